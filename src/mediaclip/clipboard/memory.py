import threading
from pathlib import Path
from typing import Iterable, Optional, Union

from mediaclip.clipboard.base import ClipboardBackend, ClipboardSnapshot


class MemoryClipboard(ClipboardBackend):
    """In-process clipboard with the same interface as the system backends.

    Every ``set_*``/``write_*`` call replaces the content and bumps the
    change counter, like a real pasteboard does.
    """

    def __init__(self, frontmost: Optional[str] = None) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._snapshot = ClipboardSnapshot()
        self.frontmost = frontmost

    def change_count(self) -> int:
        with self._lock:
            return self._count

    def read_by_format_priority(self) -> ClipboardSnapshot:
        with self._lock:
            return self._snapshot

    def frontmost_app(self) -> Optional[str]:
        return self.frontmost

    def clear(self) -> None:
        self._replace(ClipboardSnapshot())

    def write_text(self, text: str) -> bool:
        self._replace(ClipboardSnapshot(text=text))
        return True

    def write_image(self, payload: bytes, mime: str = "image/png") -> bool:
        self._replace(ClipboardSnapshot(image=payload, image_mime=mime))
        return True

    def write_file_ref(self, path: Union[str, Path]) -> bool:
        self._replace(ClipboardSnapshot(file_paths=(Path(path),)))
        return True

    # Simulated user copies.

    def set_text(self, text: str) -> None:
        self._replace(ClipboardSnapshot(text=text))

    def set_rich_text(self, payload: bytes, kind: str = "rtf", text: Optional[str] = None) -> None:
        self._replace(ClipboardSnapshot(rich_text=payload, rich_text_kind=kind, text=text))

    def set_image(self, payload: bytes, mime: str = "image/png") -> None:
        self._replace(ClipboardSnapshot(image=payload, image_mime=mime))

    def set_files(self, paths: Iterable[Union[str, Path]], text: Optional[str] = None) -> None:
        self._replace(ClipboardSnapshot(
            file_paths=tuple(Path(p) for p in paths), text=text))

    def set_snapshot(self, snapshot: ClipboardSnapshot) -> None:
        self._replace(snapshot)

    def _replace(self, snapshot: ClipboardSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._count += 1
