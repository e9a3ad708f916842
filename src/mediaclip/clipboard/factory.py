import platform
from typing import Type

from mediaclip.clipboard.base import ClipboardBackend
from mediaclip.exceptions import ClipboardUnavailableError


def get_clipboard_class() -> Type[ClipboardBackend]:
    system = platform.system()

    try:
        if system == "Windows":
            from mediaclip.clipboard.windows import WindowsClipboard
            return WindowsClipboard
        elif system == "Linux":
            from mediaclip.clipboard.linux import LinuxClipboard
            return LinuxClipboard
        elif system == "Darwin":
            from mediaclip.clipboard.macos import MacOSClipboard
            return MacOSClipboard
    except ImportError as e:
        raise ClipboardUnavailableError(
            f"Clipboard support for {system} is not installed: {e}") from e

    raise ClipboardUnavailableError(f"Platform '{system}' is not supported")


def get_clipboard_backend() -> ClipboardBackend:
    clipboard_class = get_clipboard_class()
    return clipboard_class()
