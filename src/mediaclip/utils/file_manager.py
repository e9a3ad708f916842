import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Iterable, Optional, Set, Union

from mediaclip.exceptions import AssetError
from mediaclip.models import HistoryEntry

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class AssetStore:
    """Owns the binary payloads referenced by history entries.

    Images and thumbnails are referenced by file name inside their own
    directory, video copies by absolute path inside ``media/``.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        if base_dir is None:
            base_dir = Path.home() / ".mediaclip"
        self.base_dir = Path(base_dir).expanduser().resolve()
        self.images_dir = self.base_dir / "images"
        self.media_dir = self.base_dir / "media"
        self.thumbnails_dir = self.base_dir / "thumbnails"

        for directory in (self.base_dir, self.images_dir, self.media_dir, self.thumbnails_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AssetError(f"Cannot create asset directory {directory}: {e}") from e

    # -- writes -------------------------------------------------------------

    def store_image(self, payload: bytes) -> Optional[str]:
        return self._write_new(self.images_dir, payload, ".png")

    def store_thumbnail(self, payload: bytes) -> Optional[str]:
        return self._write_new(self.thumbnails_dir, payload, ".jpg")

    def store_video(self, source: PathLike) -> Optional[str]:
        source_path = Path(source)
        try:
            source_size = source_path.stat().st_size
        except OSError as e:
            logger.warning(f"Cannot stat video {source_path}: {e}")
            return None

        # Size-only match; two different videos of equal size collapse into one.
        existing = self._find_video_by_size(source_size)
        if existing is not None:
            logger.info(f"Reusing stored video {existing.name} for {source_path.name}")
            return str(existing)

        file_path = self.media_dir / f"{uuid.uuid4()}{source_path.suffix.lower()}"
        try:
            shutil.copyfile(source_path, file_path)
        except OSError as e:
            logger.error(f"Failed to copy video {source_path}: {e}")
            file_path.unlink(missing_ok=True)
            return None

        logger.info(f"Saved video to {file_path}")
        return str(file_path)

    # -- reads --------------------------------------------------------------

    def load_image(self, file_name: str) -> Optional[bytes]:
        return self._read(self.images_dir / file_name)

    def load_thumbnail(self, file_name: str) -> Optional[bytes]:
        return self._read(self.thumbnails_dir / file_name)

    def load_video(self, path: PathLike) -> Optional[bytes]:
        return self._read(Path(path))

    # -- deletes ------------------------------------------------------------

    def delete_image(self, file_name: str) -> None:
        self._remove(self.images_dir / file_name)

    def delete_thumbnail(self, file_name: str) -> None:
        self._remove(self.thumbnails_dir / file_name)

    def delete_video(self, path: PathLike) -> None:
        self._remove(Path(path))

    def delete_entry_assets(self, entry: HistoryEntry) -> None:
        if entry.imageFileName:
            self.delete_image(entry.imageFileName)
        if entry.thumbnailFileName:
            self.delete_thumbnail(entry.thumbnailFileName)
        if entry.mediaFilePath:
            self.delete_video(entry.mediaFilePath)

    def remove_orphans(self, entries: Iterable[HistoryEntry]) -> int:
        """Delete asset files no entry refers to. Returns the number removed."""
        referenced: Set[Path] = set()
        for entry in entries:
            if entry.imageFileName:
                referenced.add(self.images_dir / entry.imageFileName)
            if entry.thumbnailFileName:
                referenced.add(self.thumbnails_dir / entry.thumbnailFileName)
            if entry.mediaFilePath:
                referenced.add(Path(entry.mediaFilePath))

        removed = 0
        for directory in (self.images_dir, self.media_dir, self.thumbnails_dir):
            for file_path in directory.iterdir():
                if file_path.is_file() and file_path not in referenced:
                    self._remove(file_path)
                    removed += 1
        if removed:
            logger.info(f"Removed {removed} orphaned asset files")
        return removed

    # -- usage --------------------------------------------------------------

    def usage_bytes(self) -> int:
        total = 0
        for directory in (self.media_dir, self.images_dir, self.thumbnails_dir):
            for file_path in directory.rglob("*"):
                try:
                    if file_path.is_file():
                        total += file_path.stat().st_size
                except OSError:
                    continue
        return total

    def format_usage(self) -> str:
        return format_bytes(self.usage_bytes())

    # -- private ------------------------------------------------------------

    def _find_video_by_size(self, size: int) -> Optional[Path]:
        try:
            candidates = sorted(self.media_dir.iterdir())
        except OSError:
            return None
        for file_path in candidates:
            try:
                if file_path.is_file() and file_path.stat().st_size == size:
                    return file_path
            except OSError:
                continue
        return None

    def _write_new(self, directory: Path, payload: bytes, suffix: str) -> Optional[str]:
        file_name = f"{uuid.uuid4()}{suffix}"
        file_path = directory / file_name
        try:
            file_path.write_bytes(payload)
        except OSError as e:
            logger.error(f"Failed to save {file_path}: {e}")
            return None
        return file_name

    @staticmethod
    def _read(file_path: Path) -> Optional[bytes]:
        try:
            return file_path.read_bytes()
        except OSError:
            return None

    @staticmethod
    def _remove(file_path: Path) -> None:
        try:
            os.remove(file_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete {file_path}: {e}")


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("bytes", "KB", "MB", "GB"):
        if value < 1000 or unit == "GB":
            if unit == "bytes":
                return f"{int(value)} bytes"
            return f"{value:.1f} {unit}"
        value /= 1000
