"""Preview images for image and video history entries.

Both paths end in the same encoder: the picture is scaled down (never up)
so that its longer edge fits ``MAX_THUMBNAIL_SIZE`` and written as a JPEG
at ``JPEG_QUALITY``. Video frames are grabbed with ``ffmpeg`` at twice
that bound first. Every failure returns ``None``; an entry without a
thumbnail is still a valid entry.
"""
import io
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_THUMBNAIL_SIZE = 200
JPEG_QUALITY = 70
VIDEO_FRAME_TIMEOUT = 10.0


def from_image_bytes(data: bytes) -> Optional[bytes]:
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return _encode_thumbnail(image, MAX_THUMBNAIL_SIZE)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Could not create image thumbnail: {e}")
        return None


def from_video_file(path: Union[str, Path]) -> Optional[bytes]:
    frame = _grab_first_frame(Path(path), MAX_THUMBNAIL_SIZE * 2)
    if frame is None:
        return None
    return from_image_bytes(frame)


def _encode_thumbnail(image: Image.Image, max_size: int) -> bytes:
    image = ImageOps.exif_transpose(image)

    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        image = background
    elif image.mode != "RGB":
        image = image.convert("RGB")

    width, height = image.size
    scale = min(max_size / width, max_size / height, 1.0)
    if scale < 1.0:
        new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
        image = image.resize(new_size, Image.LANCZOS)

    output = io.BytesIO()
    image.save(output, format="JPEG", quality=JPEG_QUALITY)
    return output.getvalue()


def _grab_first_frame(path: Path, max_size: int) -> Optional[bytes]:
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        logger.debug("ffmpeg not found; skipping video thumbnail")
        return None

    scale = (
        f"scale='min({max_size},iw)':'min({max_size},ih)'"
        ":force_original_aspect_ratio=decrease"
    )
    command = [
        ffmpeg, "-v", "error",
        "-ss", "0",
        "-i", str(path),
        "-frames:v", "1",
        "-vf", scale,
        "-f", "image2pipe",
        "-vcodec", "png",
        "-",
    ]
    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
            timeout=VIDEO_FRAME_TIMEOUT,
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.warning(f"Failed to generate video thumbnail for {path.name}: {e}")
        return None

    return result.stdout or None


def image_mime(data: bytes, default: str = "image/png") -> str:
    """MIME type of encoded image bytes, judged from their content."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            return Image.MIME.get(image.format or "", default)
    except (UnidentifiedImageError, OSError, ValueError):
        return default
