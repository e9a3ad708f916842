from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from mediaclip.models import ContentType, HistoryEntry, Snippet, SnippetFolder


def test_text_entry_serializes_only_text_payload():
    entry = HistoryEntry.text("hello")
    data = entry.to_json_dict()

    assert data["contentType"] == "plainText"
    assert data["textContent"] == "hello"
    assert data["isPinned"] is False
    assert set(data) == {"id", "contentType", "createdAt", "textContent", "isPinned"}


def test_created_at_is_utc():
    entry = HistoryEntry.text("hello")
    stamp = entry.to_json_dict()["createdAt"]

    assert entry.createdAt.utcoffset() == timedelta(0)
    parsed = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    assert parsed.utcoffset() == timedelta(0)
    assert HistoryEntry.model_validate_json(entry.model_dump_json()).createdAt == entry.createdAt


def test_media_entries_carry_their_own_payload_field():
    image = HistoryEntry.image("a.png", "a.jpg")
    video = HistoryEntry.video("/tmp/media/v.mp4")

    assert set(image.to_json_dict()) == {
        "id", "contentType", "createdAt", "imageFileName", "thumbnailFileName", "isPinned"}
    assert set(video.to_json_dict()) == {
        "id", "contentType", "createdAt", "mediaFilePath", "isPinned"}


def test_payload_must_match_content_type():
    with pytest.raises(ValidationError):
        HistoryEntry(contentType=ContentType.IMAGE, textContent="oops")
    with pytest.raises(ValidationError):
        HistoryEntry(contentType=ContentType.PLAIN_TEXT)
    with pytest.raises(ValidationError):
        HistoryEntry(contentType=ContentType.VIDEO, mediaFilePath="/v.mp4", imageFileName="x.png")
    with pytest.raises(ValidationError):
        HistoryEntry(contentType=ContentType.RICH_TEXT, textContent="x", thumbnailFileName="t.jpg")


def test_entries_are_frozen_and_pin_returns_a_copy():
    entry = HistoryEntry.text("hello")
    with pytest.raises(ValidationError):
        entry.isPinned = True

    pinned = entry.with_pin(True)
    assert pinned.isPinned
    assert not entry.isPinned
    assert pinned.id == entry.id


def test_ids_are_unique():
    assert len({HistoryEntry.text("x").id for _ in range(50)}) == 50


def test_preview_text_and_groups():
    assert HistoryEntry.text("abc", rich=True).preview_text == "abc"
    assert HistoryEntry.image("a.png").preview_text == "Image"
    assert ContentType.RICH_TEXT.is_text
    assert ContentType.VIDEO.is_media
    assert ContentType.PLAIN_TEXT.display_name == "Text"


def test_snippet_json_omits_missing_folder():
    folder = SnippetFolder(name="Work")
    in_folder = Snippet(title="sig", content="Regards", folderID=folder.id, sortOrder=2)
    loose = Snippet(title="addr", content="Main St")

    assert in_folder.to_json_dict()["folderID"] == folder.id
    assert "folderID" not in loose.to_json_dict()
    assert set(folder.to_json_dict()) == {"id", "name", "sortOrder"}
