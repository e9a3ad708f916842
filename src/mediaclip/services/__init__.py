"""Service layer for MediaClip."""

from .clipboard_service import ClipboardMonitor
from .paste_service import PasteService
from .storage_service import ItemStore

__all__ = ["ClipboardMonitor", "ItemStore", "PasteService"]
