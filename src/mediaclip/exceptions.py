class MediaClipError(Exception):
    """Base class for MediaClip errors."""


class ClipboardUnavailableError(MediaClipError):
    """Raised when no clipboard backend can be used on this platform."""


class AssetError(MediaClipError):
    """Raised when the asset directories cannot be created."""
