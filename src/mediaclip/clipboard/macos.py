from pathlib import Path
from typing import Optional, Tuple, Union

from AppKit import (
    NSPasteboard,
    NSPasteboardTypeHTML,
    NSPasteboardTypePNG,
    NSPasteboardTypeRTF,
    NSPasteboardTypeString,
    NSPasteboardTypeTIFF,
    NSWorkspace,
)
from Foundation import NSURL, NSData

from mediaclip.clipboard.base import ClipboardBackend, ClipboardSnapshot


class MacOSClipboard(ClipboardBackend):

    def __init__(self) -> None:
        self._pasteboard = NSPasteboard.generalPasteboard()

    def change_count(self) -> int:
        return int(self._pasteboard.changeCount())

    def read_by_format_priority(self) -> ClipboardSnapshot:
        pasteboard = self._pasteboard
        types = set(pasteboard.types() or [])

        file_paths = self._get_files(pasteboard)

        image, image_mime = None, "image/png"
        for pb_type, mime in ((NSPasteboardTypeTIFF, "image/tiff"), (NSPasteboardTypePNG, "image/png")):
            if pb_type in types:
                data = pasteboard.dataForType_(pb_type)
                if data:
                    image, image_mime = bytes(data), mime
                    break

        rich_text, rich_kind = None, "rtf"
        if NSPasteboardTypeRTF in types:
            data = pasteboard.dataForType_(NSPasteboardTypeRTF)
            if data:
                rich_text = bytes(data)
        elif NSPasteboardTypeHTML in types:
            data = pasteboard.dataForType_(NSPasteboardTypeHTML)
            if data:
                rich_text, rich_kind = bytes(data), "html"

        text = None
        if NSPasteboardTypeString in types:
            value = pasteboard.stringForType_(NSPasteboardTypeString)
            text = str(value) if value is not None else None

        return ClipboardSnapshot(
            file_paths=file_paths,
            image=image,
            image_mime=image_mime,
            rich_text=rich_text,
            rich_text_kind=rich_kind,
            text=text,
        )

    def frontmost_app(self) -> Optional[str]:
        app = NSWorkspace.sharedWorkspace().frontmostApplication()
        if app is None:
            return None
        bundle_id = app.bundleIdentifier()
        return str(bundle_id) if bundle_id else None

    def _get_files(self, pasteboard) -> Tuple[Path, ...]:
        try:
            urls = pasteboard.readObjectsForClasses_options_([NSURL], None) or []
        except Exception:
            return ()
        return tuple(Path(url.path()) for url in urls if url.isFileURL())

    def clear(self) -> None:
        self._pasteboard.clearContents()

    def write_text(self, text: str) -> bool:
        self._pasteboard.clearContents()
        return bool(self._pasteboard.setString_forType_(text, NSPasteboardTypeString))

    def write_image(self, payload: bytes, mime: str = "image/png") -> bool:
        pb_type = NSPasteboardTypeTIFF if mime == "image/tiff" else NSPasteboardTypePNG
        data = NSData.dataWithBytes_length_(payload, len(payload))
        self._pasteboard.clearContents()
        return bool(self._pasteboard.setData_forType_(data, pb_type))

    def write_file_ref(self, path: Union[str, Path]) -> bool:
        url = NSURL.fileURLWithPath_(str(Path(path).resolve()))
        self._pasteboard.clearContents()
        return bool(self._pasteboard.writeObjects_([url]))
