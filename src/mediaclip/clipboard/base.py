import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class ClipboardSnapshot:
    """Everything the clipboard offered at one change, one field per format.

    Fields are listed in capture priority order: file references, raw
    bitmap, rich text, plain text.
    """
    file_paths: Tuple[Path, ...] = ()
    image: Optional[bytes] = None
    image_mime: str = "image/png"
    rich_text: Optional[bytes] = None
    rich_text_kind: str = "rtf"
    text: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.file_paths or self.image or self.rich_text or self.text)


class ClipboardBackend(ABC):
    """Minimal view of a system clipboard used by the monitor and paste service."""

    @abstractmethod
    def change_count(self) -> int:
        """Counter that changes every time the clipboard content changes."""

    @abstractmethod
    def read_by_format_priority(self) -> ClipboardSnapshot:
        pass

    @abstractmethod
    def frontmost_app(self) -> Optional[str]:
        """Identifier of the application currently in the foreground."""

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def write_text(self, text: str) -> bool:
        pass

    @abstractmethod
    def write_image(self, payload: bytes, mime: str = "image/png") -> bool:
        pass

    @abstractmethod
    def write_file_ref(self, path: Union[str, Path]) -> bool:
        pass


class FingerprintCounter:
    """Change counter for platforms without a native one.

    ``change_count`` bumps whenever the fingerprint returned by
    ``_fingerprint`` differs from the previous call.
    """

    def __init__(self) -> None:
        self._fingerprint_count = 0
        self._last_fingerprint: Optional[str] = None

    def _fingerprint(self) -> bytes:
        raise NotImplementedError

    def change_count(self) -> int:
        try:
            current = hashlib.md5(self._fingerprint()).hexdigest()
        except Exception:
            return self._fingerprint_count

        if current != self._last_fingerprint:
            if self._last_fingerprint is not None:
                self._fingerprint_count += 1
            self._last_fingerprint = current
        return self._fingerprint_count
