from pathlib import Path

import pytest

from mediaclip.clipboard import MemoryClipboard
from mediaclip.clipboard.base import FingerprintCounter
from mediaclip.models import HistoryEntry
from mediaclip.services import ClipboardMonitor, PasteService
from conftest import make_image


@pytest.fixture
def keystrokes(monkeypatch):
    sent = []
    monkeypatch.setattr(PasteService, "simulate_paste", staticmethod(lambda: sent.append("paste") or True))
    return sent


def test_published_text_is_not_captured_again(clipboard, monitor, paste_service, store):
    clipboard.set_text("original")
    entry = monitor.poll_once()

    assert paste_service.publish(entry)
    assert clipboard.read_by_format_priority().text == "original"
    assert monitor.poll_once() is None
    assert store.history() == [entry]

    clipboard.set_text("next copy")
    assert monitor.poll_once().textContent == "next copy"


def test_rich_text_entry_is_published_as_plain_text(clipboard, paste_service):
    entry = HistoryEntry.text("formatted words", rich=True)

    assert paste_service.publish(entry)
    snapshot = clipboard.read_by_format_priority()
    assert snapshot.text == "formatted words"
    assert snapshot.rich_text is None


def test_image_entry_publishes_stored_bytes(clipboard, paste_service, assets):
    jpeg = make_image(20, 20, fmt="JPEG")
    entry = HistoryEntry.image(assets.store_image(jpeg))

    assert paste_service.publish(entry)
    snapshot = clipboard.read_by_format_priority()
    assert snapshot.image == jpeg
    assert snapshot.image_mime == "image/jpeg"


def test_missing_image_file_fails_without_capture(clipboard, monitor, paste_service):
    entry = HistoryEntry.image("gone.png")

    assert not paste_service.publish(entry)
    assert clipboard.read_by_format_priority().is_empty
    assert monitor.poll_once() is None


def test_video_entry_publishes_file_reference(clipboard, paste_service, tmp_path):
    path = tmp_path / "clip.mp4"
    entry = HistoryEntry.video(str(path))

    assert paste_service.publish(entry)
    assert clipboard.read_by_format_priority().file_paths == (Path(path),)


def test_paste_sends_keystroke(paste_service, store, keystrokes):
    entry = HistoryEntry.text("x")
    store.insert(entry)

    assert paste_service.paste(entry)
    assert keystrokes == ["paste"]
    assert store.get(entry.id) is not None


def test_paste_can_delete_the_entry(paste_service, store, settings, keystrokes):
    settings.update(delete_after_paste=True)
    entry = HistoryEntry.text("once")
    store.insert(entry)

    assert paste_service.paste(entry)
    assert store.get(entry.id) is None


def test_paste_without_keystroke_keeps_entry(paste_service, store, settings, keystrokes):
    settings.update(paste_after_selection=False, delete_after_paste=True)
    entry = HistoryEntry.text("stay")
    store.insert(entry)

    assert paste_service.paste(entry)
    assert keystrokes == []
    assert store.get(entry.id) is not None


def test_paste_text_for_snippets(clipboard, monitor, paste_service, keystrokes):
    assert paste_service.paste_text("Kind regards")

    assert clipboard.read_by_format_priority().text == "Kind regards"
    assert keystrokes == ["paste"]
    assert monitor.poll_once() is None


class ContentCountedClipboard(FingerprintCounter, MemoryClipboard):
    """Memory clipboard whose counter only moves when the content differs."""

    def __init__(self):
        MemoryClipboard.__init__(self, frontmost="org.example.editor")
        FingerprintCounter.__init__(self)

    def _fingerprint(self) -> bytes:
        return repr(self.read_by_format_priority()).encode("utf-8")


def test_republishing_current_content_keeps_next_copy(store, assets, settings):
    clipboard = ContentCountedClipboard()
    monitor = ClipboardMonitor(clipboard, store, assets, settings, poll_interval=0.01)
    service = PasteService(clipboard, monitor, store, settings)
    monitor.poll_once()
    clipboard.set_text("hello")
    entry = monitor.poll_once()

    assert service.publish(entry)
    clipboard.set_text("user copy")

    assert monitor.poll_once().textContent == "user copy"


def test_failed_publish_keeps_next_copy(clipboard, monitor, paste_service, monkeypatch):
    monitor.poll_once()
    monkeypatch.setattr(clipboard, "clear", lambda: None)
    monkeypatch.setattr(clipboard, "write_text", lambda text: False)

    assert not paste_service.publish_text("snippet")
    clipboard.set_text("user copy")

    assert monitor.poll_once().textContent == "user copy"


def test_clear_error_is_reported_and_keeps_next_copy(clipboard, monitor, paste_service, monkeypatch):
    def broken():
        raise RuntimeError("clipboard locked")

    monitor.poll_once()
    monkeypatch.setattr(clipboard, "clear", broken)

    assert not paste_service.publish(HistoryEntry.text("x"))
    clipboard.set_text("user copy")

    assert monitor.poll_once().textContent == "user copy"
