import io
import os
import struct
import time
from pathlib import Path
from typing import Optional, Tuple, Union

import win32api
import win32clipboard as wc
import win32con
import win32gui
import win32process
from PIL import Image, ImageGrab

from mediaclip.clipboard.base import ClipboardBackend, ClipboardSnapshot

PROCESS_QUERY_LIMITED_INFORMATION = 0x1000


class WindowsClipboard(ClipboardBackend):

    def __init__(self) -> None:
        self._cf_rtf = wc.RegisterClipboardFormat("Rich Text Format")
        self._cf_html = wc.RegisterClipboardFormat("HTML Format")

    def change_count(self) -> int:
        return wc.GetClipboardSequenceNumber()

    def read_by_format_priority(self) -> ClipboardSnapshot:
        file_paths: Tuple[Path, ...] = ()
        image = None

        grabbed = self._from_imagegrab()
        if isinstance(grabbed, tuple):
            file_paths = grabbed
        elif isinstance(grabbed, bytes):
            image = grabbed

        rich_text, rich_kind, text = None, "rtf", None
        if not self._open():
            return ClipboardSnapshot(file_paths=file_paths, image=image)
        try:
            if not file_paths and wc.IsClipboardFormatAvailable(win32con.CF_HDROP):
                try:
                    files = wc.GetClipboardData(win32con.CF_HDROP)
                except Exception:
                    files = ()
                if isinstance(files, str):
                    files = [files]
                file_paths = tuple(Path(p) for p in files or ())

            if wc.IsClipboardFormatAvailable(self._cf_rtf):
                rich_text = self._get_bytes(self._cf_rtf)
            elif wc.IsClipboardFormatAvailable(self._cf_html):
                rich_text = self._get_bytes(self._cf_html)
                rich_kind = "html"

            if wc.IsClipboardFormatAvailable(wc.CF_UNICODETEXT):
                try:
                    text = wc.GetClipboardData(wc.CF_UNICODETEXT)
                except Exception:
                    text = None
        finally:
            self._close()

        return ClipboardSnapshot(
            file_paths=file_paths,
            image=image,
            rich_text=rich_text,
            rich_text_kind=rich_kind,
            text=text,
        )

    def frontmost_app(self) -> Optional[str]:
        try:
            hwnd = win32gui.GetForegroundWindow()
            if not hwnd:
                return None
            _, pid = win32process.GetWindowThreadProcessId(hwnd)
            handle = win32api.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
            try:
                exe = win32process.GetModuleFileNameEx(handle, 0)
            finally:
                win32api.CloseHandle(handle)
            return os.path.basename(exe).lower()
        except Exception:
            return None

    def _from_imagegrab(self) -> Union[None, bytes, Tuple[Path, ...]]:
        try:
            clipboard_data = ImageGrab.grabclipboard()
        except Exception:
            return None

        if clipboard_data is None:
            return None

        if isinstance(clipboard_data, (list, tuple)):
            return tuple(Path(p) for p in clipboard_data)

        if hasattr(clipboard_data, "save"):
            output = io.BytesIO()
            try:
                clipboard_data.save(output, format="PNG")
            except Exception:
                return None
            return output.getvalue()
        return None

    def _get_bytes(self, fmt: int) -> Optional[bytes]:
        try:
            data = wc.GetClipboardData(fmt)
        except Exception:
            return None
        if isinstance(data, str):
            data = data.encode("utf-8")
        return bytes(data).rstrip(b"\0") or None

    def _open(self) -> bool:
        for _ in range(3):
            try:
                wc.OpenClipboard()
                return True
            except Exception:
                time.sleep(0.05)
        return False

    def _close(self) -> None:
        try:
            wc.CloseClipboard()
        except Exception:
            pass

    def clear(self) -> None:
        if not self._open():
            return
        try:
            wc.EmptyClipboard()
        finally:
            self._close()

    def write_text(self, text: str) -> bool:
        if not self._open():
            return False
        try:
            wc.EmptyClipboard()
            wc.SetClipboardData(wc.CF_UNICODETEXT, text)
            return True
        except Exception:
            return False
        finally:
            self._close()

    def write_image(self, payload: bytes, mime: str = "image/png") -> bool:
        try:
            image = Image.open(io.BytesIO(payload))
            if image.mode == "RGBA":
                background = Image.new("RGB", image.size, (255, 255, 255))
                background.paste(image, mask=image.split()[3])
                image = background
            elif image.mode != "RGB":
                image = image.convert("RGB")
            output = io.BytesIO()
            image.save(output, "BMP")
            bmp_data = output.getvalue()
        except Exception:
            return False

        if len(bmp_data) <= 14 or not self._open():
            return False
        try:
            wc.EmptyClipboard()
            wc.SetClipboardData(win32con.CF_DIB, bmp_data[14:])
            return True
        except Exception:
            return False
        finally:
            self._close()

    def write_file_ref(self, path: Union[str, Path]) -> bool:
        # DROPFILES header followed by a double-NUL terminated UTF-16 path list.
        file_list = (str(Path(path).resolve()) + "\0\0").encode("utf-16-le")
        dropfiles = struct.pack("<IiiII", 20, 0, 0, 0, 1) + file_list
        if not self._open():
            return False
        try:
            wc.EmptyClipboard()
            wc.SetClipboardData(win32con.CF_HDROP, dropfiles)
            return True
        except Exception:
            return False
        finally:
            self._close()
