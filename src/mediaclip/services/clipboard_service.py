import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from mediaclip.clipboard import ClipboardBackend, ClipboardSnapshot
from mediaclip.config import SettingsProvider
from mediaclip.models import HistoryEntry
from mediaclip.services.storage_service import ItemStore
from mediaclip.utils import thumbnails
from mediaclip.utils.file_manager import AssetStore
from mediaclip.utils.rich_text import extract_plain_text

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {"mov", "mp4", "m4v", "avi", "mkv"}
IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "tiff", "gif", "bmp", "heic"}


class ClipboardMonitor:
    """Captures clipboard changes into the item store.

    ``poll_once`` does one check; ``start`` runs it on a daemon thread every
    ``poll_interval`` seconds. Asset copies and thumbnails are produced
    inside the tick, so entries are inserted in the order the clipboard
    changed.
    """

    def __init__(
        self,
        backend: ClipboardBackend,
        store: ItemStore,
        assets: AssetStore,
        settings: SettingsProvider,
        poll_interval: Optional[float] = None,
    ) -> None:
        self.backend = backend
        self.store = store
        self.assets = assets
        self._settings = settings
        self.poll_interval = poll_interval if poll_interval is not None else settings().poll_interval

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None
        self._is_running = False
        self._last_change_count: Optional[int] = None
        self._self_change = False

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._is_running:
                return

            self._last_change_count = self._read_change_count()
            self._stop_event.clear()
            self._is_running = True
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="clipboard-monitor", daemon=True)
            self._poll_thread.start()
        logger.info(f"Clipboard monitor started (every {self.poll_interval}s)")

    def stop(self) -> None:
        with self._lock:
            if not self._is_running:
                return

            self._is_running = False
            self._stop_event.set()

        if self._poll_thread is not None:
            self._poll_thread.join(timeout=max(1.0, self.poll_interval * 2))
            self._poll_thread = None
        logger.info("Clipboard monitor stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    def run_forever(self) -> None:
        try:
            if not self._is_running:
                self.start()

            while not self._stop_event.wait(timeout=self.poll_interval):
                continue
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Error while polling clipboard: {e}", exc_info=True)
            self._stop_event.wait(self.poll_interval)

    def __enter__(self) -> "ClipboardMonitor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -- self changes -------------------------------------------------------

    def mark_self_change(self) -> None:
        with self._lock:
            self._self_change = True

    @contextmanager
    def self_change(self) -> Iterator[None]:
        """Mark the next clipboard change as ours and hold off polling while writing.

        If the change counter has not moved once the block exits (failed
        write, or content identical to what was already there), the mark is
        dropped again so the user's next copy is still captured.
        """
        with self._lock:
            before = self._read_change_count()
            self._self_change = True
            try:
                yield
            finally:
                after = self._read_change_count()
                if after is None or after == before:
                    self._self_change = False
                    logger.debug("Clipboard write left no change; self-change mark cleared")

    # -- polling ------------------------------------------------------------

    def poll_once(self) -> Optional[HistoryEntry]:
        with self._lock:
            current = self._read_change_count()
            if current is None or current == self._last_change_count:
                return None
            self._last_change_count = current

            if self._self_change:
                self._self_change = False
                logger.debug("Skipping clipboard change made by MediaClip")
                return None

            settings = self._settings()
            app_id = self._frontmost_app()
            if app_id and app_id in settings.excluded_app_ids:
                logger.debug(f"Skipping clipboard change from excluded app {app_id}")
                return None

            try:
                snapshot = self.backend.read_by_format_priority()
            except Exception as e:
                logger.warning(f"Could not read clipboard: {e}")
                return None

            entry = self.detect(snapshot)
            if entry is None:
                return None

            if settings.handle_duplicates:
                duplicate = self.store.find_duplicate(entry)
                if duplicate is not None:
                    self.store.delete(duplicate.id)

            self.store.insert(entry)
            logger.info(f"Clipboard copied: {entry.contentType.display_name}")
            return entry

    def detect(self, snapshot: ClipboardSnapshot) -> Optional[HistoryEntry]:
        """Build an entry from the highest-priority enabled format, if any."""
        settings = self._settings()

        if snapshot.file_paths and settings.support_filenames and settings.support_images:
            source = snapshot.file_paths[0]
            extension = source.suffix.lower().lstrip(".")
            # A matched format that fails to read or copy yields no entry.
            if extension in VIDEO_EXTENSIONS:
                return self._capture_video(source)
            if extension in IMAGE_EXTENSIONS:
                return self._capture_image_file(source)

        if snapshot.image and settings.support_images and settings.save_screenshots:
            return self._capture_image(snapshot.image)

        if snapshot.rich_text and settings.support_rich_text:
            text = extract_plain_text(snapshot.rich_text, snapshot.rich_text_kind)
            if text and text.strip():
                return HistoryEntry.text(text, rich=True)

        if snapshot.text and settings.support_plain_text:
            if snapshot.text.strip():
                return HistoryEntry.text(snapshot.text)

        return None

    def _capture_video(self, source: Path) -> Optional[HistoryEntry]:
        path = self.assets.store_video(source)
        if path is None:
            return None
        thumbnail = None
        data = thumbnails.from_video_file(path)
        if data is not None:
            thumbnail = self.assets.store_thumbnail(data)
        return HistoryEntry.video(path, thumbnail)

    def _capture_image_file(self, source: Path) -> Optional[HistoryEntry]:
        try:
            data = source.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read image file {source}: {e}")
            return None
        return self._capture_image(data)

    def _capture_image(self, data: bytes) -> Optional[HistoryEntry]:
        file_name = self.assets.store_image(data)
        if file_name is None:
            return None
        thumbnail = None
        thumb_data = thumbnails.from_image_bytes(data)
        if thumb_data is not None:
            thumbnail = self.assets.store_thumbnail(thumb_data)
        return HistoryEntry.image(file_name, thumbnail)

    def _read_change_count(self) -> Optional[int]:
        try:
            return self.backend.change_count()
        except Exception as e:
            logger.warning(f"Could not read clipboard change count: {e}")
            return None

    def _frontmost_app(self) -> Optional[str]:
        try:
            return self.backend.frontmost_app()
        except Exception as e:
            logger.debug(f"Could not resolve frontmost app: {e}")
            return None
