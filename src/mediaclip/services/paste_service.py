import logging
import platform
import time
from typing import Optional

from mediaclip.clipboard import ClipboardBackend
from mediaclip.config import SettingsProvider
from mediaclip.models import ContentType, HistoryEntry
from mediaclip.services.clipboard_service import ClipboardMonitor
from mediaclip.services.storage_service import ItemStore
from mediaclip.utils import thumbnails

logger = logging.getLogger(__name__)

PASTE_DELAY = 0.05


class PasteService:
    """The only writer to the clipboard besides the user.

    Every write marks the monitor's self-change flag first, so the change it
    causes is not captured again.
    """

    def __init__(
        self,
        backend: ClipboardBackend,
        monitor: ClipboardMonitor,
        store: ItemStore,
        settings: SettingsProvider,
    ) -> None:
        self.backend = backend
        self.monitor = monitor
        self.store = store
        self._settings = settings

    def publish(self, entry: HistoryEntry) -> bool:
        with self.monitor.self_change():
            try:
                self.backend.clear()
                ok = self._write_entry(entry)
            except Exception as e:
                logger.error(f"Failed to publish {entry.contentType.value} entry: {e}")
                return False

        if not ok:
            logger.warning(f"Could not put {entry.contentType.value} entry {entry.id} on the clipboard")
        return ok

    def publish_text(self, text: str) -> bool:
        with self.monitor.self_change():
            try:
                self.backend.clear()
                return self.backend.write_text(text)
            except Exception as e:
                logger.error(f"Failed to publish text: {e}")
                return False

    def paste(self, entry: HistoryEntry) -> bool:
        if not self.publish(entry):
            return False
        settings = self._settings()
        if settings.paste_after_selection:
            self.simulate_paste()
            if settings.delete_after_paste:
                self.store.delete(entry.id)
        return True

    def paste_text(self, text: str) -> bool:
        if not self.publish_text(text):
            return False
        if self._settings().paste_after_selection:
            self.simulate_paste()
        return True

    @staticmethod
    def simulate_paste() -> bool:
        try:
            import keyboard
        except ImportError as e:
            logger.warning(f"Paste keystroke unavailable: {e}")
            return False

        hotkey = "command+v" if platform.system() == "Darwin" else "ctrl+v"
        try:
            time.sleep(PASTE_DELAY)
            keyboard.send(hotkey)
            return True
        except Exception as e:
            # keyboard needs root on Linux and accessibility access on macOS.
            logger.warning(f"Could not send {hotkey}: {e}")
            return False

    def _write_entry(self, entry: HistoryEntry) -> bool:
        if entry.contentType in (ContentType.PLAIN_TEXT, ContentType.RICH_TEXT):
            return self.backend.write_text(entry.textContent or "")

        if entry.contentType is ContentType.IMAGE:
            data: Optional[bytes] = self.store.assets.load_image(entry.imageFileName or "")
            if data is None:
                return False
            return self.backend.write_image(data, thumbnails.image_mime(data))

        if entry.contentType is ContentType.VIDEO and entry.mediaFilePath:
            return self.backend.write_file_ref(entry.mediaFilePath)
        return False
