import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# make src importable without installing
REPO_ROOT = Path(__file__).resolve().parent.parent
SRC = REPO_ROOT / "src"
sys.path.insert(0, str(SRC))

from mediaclip.clipboard import MemoryClipboard  # noqa: E402
from mediaclip.config import Settings  # noqa: E402
from mediaclip.services import ClipboardMonitor, ItemStore, PasteService  # noqa: E402
from mediaclip.utils.file_manager import AssetStore  # noqa: E402


class SettingsBox:
    """Settings provider whose value tests can change between polls."""

    def __init__(self, settings: Settings):
        self.value = settings

    def __call__(self) -> Settings:
        return self.value

    def update(self, **changes) -> None:
        self.value = self.value.with_changes(**changes)


def make_image(width: int, height: int, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    image = Image.new(mode, (width, height), color)
    output = io.BytesIO()
    image.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "mediaclip"


@pytest.fixture
def settings(data_dir):
    return SettingsBox(Settings(data_dir=data_dir, max_history_count=30))


@pytest.fixture
def assets(data_dir):
    return AssetStore(data_dir)


@pytest.fixture
def store(data_dir, assets, settings):
    return ItemStore(data_dir, assets, settings)


@pytest.fixture
def clipboard():
    return MemoryClipboard(frontmost="org.example.editor")


@pytest.fixture
def monitor(clipboard, store, assets, settings):
    return ClipboardMonitor(clipboard, store, assets, settings, poll_interval=0.01)


@pytest.fixture
def paste_service(clipboard, monitor, store, settings):
    return PasteService(clipboard, monitor, store, settings)
