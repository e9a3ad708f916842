from mediaclip.clipboard.base import ClipboardBackend, ClipboardSnapshot
from mediaclip.clipboard.factory import get_clipboard_backend, get_clipboard_class
from mediaclip.clipboard.memory import MemoryClipboard

__all__ = [
    'ClipboardBackend',
    'ClipboardSnapshot',
    'MemoryClipboard',
    'get_clipboard_backend',
    'get_clipboard_class',
]
