import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import unquote, urlparse

from mediaclip.clipboard.base import ClipboardBackend, ClipboardSnapshot, FingerprintCounter


class LinuxClipboard(FingerprintCounter, ClipboardBackend):
    _FILE_TARGETS = ("x-special/gnome-copied-files", "text/uri-list")
    _IMAGE_TARGETS = {
        "image/png": "image/png",
        "image/jpeg": "image/jpeg",
        "image/jpg": "image/jpeg",
        "image/bmp": "image/bmp",
        "image/x-ms-bmp": "image/bmp",
        "image/tiff": "image/tiff",
        "image/webp": "image/webp",
    }
    _RICH_TARGETS = {
        "text/rtf": "rtf",
        "application/rtf": "rtf",
        "text/richtext": "rtf",
        "text/html": "html",
    }
    _TEXT_TARGETS = (
        "text/plain;charset=utf-8",
        "utf8_string",
        "text/plain",
        "string",
    )

    def __init__(self) -> None:
        super().__init__()
        self._wayland = bool(os.environ.get("WAYLAND_DISPLAY")) and bool(shutil.which("wl-paste"))

    # -- reading ------------------------------------------------------------

    def _fingerprint(self) -> bytes:
        types = self._list_types()
        lowered = {t.lower(): t for t in types}
        for target in (*self._FILE_TARGETS, *self._IMAGE_TARGETS, *self._TEXT_TARGETS):
            if target in lowered:
                data = self._read_target(lowered[target]) or b""
                return "\n".join(types).encode("utf-8") + b"\0" + data
        return "\n".join(types).encode("utf-8")

    def read_by_format_priority(self) -> ClipboardSnapshot:
        types = self._list_types()
        lowered = {t.lower(): t for t in types}

        file_paths = ()
        for target in self._FILE_TARGETS:
            if target in lowered:
                data = self._read_target(lowered[target])
                if data:
                    file_paths = tuple(self._parse_paths(data))
                    break

        image, image_mime = None, "image/png"
        for target, mime in self._IMAGE_TARGETS.items():
            if target in lowered:
                data = self._read_target(lowered[target])
                if data:
                    image, image_mime = data, mime
                    break

        rich_text, rich_kind = None, "rtf"
        for target, kind in self._RICH_TARGETS.items():
            if target in lowered:
                data = self._read_target(lowered[target])
                if data:
                    rich_text, rich_kind = data, kind
                    break

        text = None
        for target in self._TEXT_TARGETS:
            if target in lowered:
                data = self._read_target(lowered[target])
                if data:
                    text = data.decode("utf-8", errors="ignore")
                    break
        if text is None and not types:
            data = self._read_default_text()
            if data:
                text = data.decode("utf-8", errors="ignore")

        return ClipboardSnapshot(
            file_paths=file_paths,
            image=image,
            image_mime=image_mime,
            rich_text=rich_text,
            rich_text_kind=rich_kind,
            text=text,
        )

    def frontmost_app(self) -> Optional[str]:
        if not shutil.which("xdotool"):
            return None
        pid = self._run_command(["xdotool", "getactivewindow", "getwindowpid"], timeout=1.0)
        if not pid:
            return None
        try:
            return Path(f"/proc/{int(pid.strip())}/comm").read_text().strip() or None
        except (OSError, ValueError):
            return None

    def _list_types(self) -> List[str]:
        if self._wayland:
            data = self._run_command(["wl-paste", "--list-types"], timeout=1.5)
        elif shutil.which("xclip"):
            data = self._run_command(
                ["xclip", "-selection", "clipboard", "-t", "TARGETS", "-o"],
                timeout=1.5,
            )
        else:
            data = None
        return self._parse_type_list(data)

    def _read_target(self, target: str) -> Optional[bytes]:
        if self._wayland:
            command = ["wl-paste", "--type", target]
            if target.lower().startswith("text/plain"):
                command.append("--no-newline")
            return self._run_command(command, timeout=1.5)
        return self._run_command(
            ["xclip", "-selection", "clipboard", "-t", target, "-o"],
            timeout=1.5,
        )

    def _read_default_text(self) -> Optional[bytes]:
        if self._wayland:
            return self._run_command(["wl-paste", "--no-newline"], timeout=1.5)
        if shutil.which("xclip"):
            return self._run_command(["xclip", "-selection", "clipboard", "-o"], timeout=1.5)
        return None

    def _parse_type_list(self, data: Optional[bytes]) -> List[str]:
        if not data:
            return []
        text = data.decode("utf-8", errors="ignore")
        return [line.strip() for line in text.splitlines() if line.strip()]

    def _parse_paths(self, data: bytes) -> List[Path]:
        text = data.decode("utf-8", errors="ignore")
        lines = [line.strip() for line in text.replace(
            "\r", "\n").split("\n") if line.strip()]
        if lines and lines[0].lower() in {"copy", "cut"}:
            lines = lines[1:]

        paths: List[Path] = []
        for entry in lines:
            if entry.startswith("#"):
                continue
            parsed = urlparse(entry)
            if parsed.scheme == "file":
                paths.append(Path(unquote(parsed.path)))
            elif not parsed.scheme:
                paths.append(Path(unquote(entry)))
        return paths

    def _run_command(self, command: List[str], timeout: float) -> Optional[bytes]:
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=timeout,
            )
            return result.stdout
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None

    # -- writing ------------------------------------------------------------

    def clear(self) -> None:
        if self._wayland and shutil.which("wl-copy"):
            self._write_command(["wl-copy", "--clear"], b"")
        elif shutil.which("xclip"):
            self._write_command(["xclip", "-selection", "clipboard"], b"")

    def write_text(self, text: str) -> bool:
        return self._copy(text.encode("utf-8"), None)

    def write_image(self, payload: bytes, mime: str = "image/png") -> bool:
        return self._copy(payload, mime)

    def write_file_ref(self, path: Union[str, Path]) -> bool:
        uri = Path(path).resolve().as_uri()
        return self._copy(uri.encode("utf-8"), "text/uri-list")

    def _copy(self, payload: bytes, mime: Optional[str]) -> bool:
        if self._wayland and shutil.which("wl-copy"):
            command = ["wl-copy"]
            if mime:
                command += ["--type", mime]
        elif shutil.which("xclip"):
            command = ["xclip", "-selection", "clipboard"]
            if mime:
                command += ["-t", mime]
        else:
            return False
        return self._write_command(command, payload)

    def _write_command(self, command: List[str], payload: bytes) -> bool:
        # The copy tools fork a server process; do not wait on its output.
        try:
            subprocess.run(
                command,
                input=payload,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=True,
                timeout=2.0,
            )
            return True
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return False
