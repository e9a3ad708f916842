import json

import pytest

from mediaclip.models import HistoryEntry, Snippet, SnippetFolder
from mediaclip.services import ItemStore, storage_service
from mediaclip.services.storage_service import FOLDERS, HISTORY, MEDIA_GROUP, SNIPPETS, TEXT_GROUP


def _texts(store):
    return [item.textContent for item in store.history()]


def test_insert_places_entry_first_and_persists(store, data_dir):
    store.insert(HistoryEntry.text("first"))
    store.insert(HistoryEntry.text("second"))

    assert _texts(store) == ["second", "first"]
    on_disk = json.loads((data_dir / "history.json").read_text(encoding="utf-8"))
    assert [item["textContent"] for item in on_disk] == ["second", "first"]


def test_history_survives_reload(store, data_dir, assets, settings):
    entry = HistoryEntry.text("keep me", rich=True)
    store.insert(entry)
    store.toggle_pin(entry.id)

    reloaded = ItemStore(data_dir, assets, settings)

    assert [e.to_json_dict() for e in reloaded.history()] == [
        e.to_json_dict() for e in store.history()]
    assert reloaded.get(entry.id).isPinned


def test_retention_evicts_oldest_unpinned(store, settings):
    settings.update(max_history_count=3)
    for i in range(5):
        store.insert(HistoryEntry.text(f"t{i}"))

    assert _texts(store) == ["t4", "t3", "t2"]


def test_pinned_entries_are_never_evicted_or_counted(store, settings):
    settings.update(max_history_count=2)
    pinned = HistoryEntry.text("pinned").with_pin(True)
    store.insert(pinned)
    for i in range(4):
        store.insert(HistoryEntry.text(f"t{i}"))

    history = store.history()
    assert [item.textContent for item in history] == ["t3", "t2", "pinned"]
    assert sum(1 for item in history if not item.isPinned) == 2


def test_duplicate_moves_to_front_with_small_limit(store, settings):
    settings.update(max_history_count=3)
    for text in ["a", "b", "c", "a"]:
        entry = HistoryEntry.text(text)
        duplicate = store.find_duplicate(entry)
        if duplicate is not None:
            store.delete(duplicate.id)
        store.insert(entry)

    assert _texts(store) == ["a", "c", "b"]


def test_find_duplicate_matches_kind_and_text(store):
    plain = HistoryEntry.text("same")
    store.insert(plain)

    assert store.find_duplicate(HistoryEntry.text("same")) == plain
    assert store.find_duplicate(HistoryEntry.text("same", rich=True)) is None
    assert store.find_duplicate(HistoryEntry.text("other")) is None
    assert store.find_duplicate(HistoryEntry.image("x.png")) is None


def test_eviction_removes_asset_files(store, assets, settings):
    settings.update(max_history_count=1)
    name = assets.store_image(b"png")
    thumb = assets.store_thumbnail(b"jpg")
    store.insert(HistoryEntry.image(name, thumb))
    store.insert(HistoryEntry.text("newer"))

    assert assets.load_image(name) is None
    assert assets.load_thumbnail(thumb) is None


def test_delete_removes_entry_and_assets(store, assets, data_dir, settings):
    name = assets.store_image(b"png")
    entry = HistoryEntry.image(name)
    store.insert(entry)

    assert store.delete(entry.id)
    assert store.get(entry.id) is None
    assert assets.load_image(name) is None
    assert ItemStore(data_dir, assets, settings).history() == []
    assert not store.delete(entry.id)


def test_shared_video_file_survives_deleting_one_entry(store, assets, tmp_path):
    source = tmp_path / "clip.mp4"
    source.write_bytes(b"v" * 512)
    path = assets.store_video(source)
    first = HistoryEntry.video(path)
    second = HistoryEntry.video(assets.store_video(source))
    store.insert(first)
    store.insert(second)

    store.delete(second.id)
    assert assets.load_video(path) is not None

    store.delete(first.id)
    assert assets.load_video(path) is None


def test_clear_unpinned_keeps_pinned(store):
    keep = HistoryEntry.text("keep")
    store.insert(keep)
    store.insert(HistoryEntry.text("drop 1"))
    store.insert(HistoryEntry.text("drop 2"))
    store.toggle_pin(keep.id)

    assert store.clear_unpinned() == 2
    assert _texts(store) == ["keep"]


def test_toggle_pin_flips_and_ignores_unknown(store):
    entry = HistoryEntry.text("x")
    store.insert(entry)

    assert store.toggle_pin(entry.id).isPinned
    assert not store.toggle_pin(entry.id).isPinned
    assert store.toggle_pin("missing") is None


def test_history_groups(store):
    store.insert(HistoryEntry.text("plain"))
    store.insert(HistoryEntry.image("i.png"))
    store.insert(HistoryEntry.text("rich", rich=True))
    store.insert(HistoryEntry.video("/m/v.mp4"))

    assert [item.preview_text for item in store.history(TEXT_GROUP)] == ["rich", "plain"]
    assert [item.contentType.value for item in store.history(MEDIA_GROUP)] == ["video", "image"]
    with pytest.raises(ValueError):
        store.history("files")


@pytest.mark.parametrize("content", ["", "not json", "{\"id\": 1}", "[{\"contentType\": \"bogus\"}]"])
def test_corrupt_history_file_loads_empty(data_dir, assets, settings, content):
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "history.json").write_text(content, encoding="utf-8")

    reloaded = ItemStore(data_dir, assets, settings)

    assert reloaded.history() == []
    assert not reloaded.history_intact


def test_missing_history_file_counts_as_intact(store):
    assert store.history() == []
    assert store.history_intact


def test_saves_leave_no_temporary_files(store, data_dir):
    for i in range(3):
        store.insert(HistoryEntry.text(str(i)))
    store.add_snippet(Snippet(title="t", content="c"))

    assert not list(data_dir.glob("*.tmp"))


def test_snippets_sorted_within_folder(store):
    folder = SnippetFolder(name="Work")
    store.add_folder(folder)
    store.add_snippet(Snippet(title="b", content="2", folderID=folder.id, sortOrder=2))
    store.add_snippet(Snippet(title="a", content="1", folderID=folder.id, sortOrder=1))
    store.add_snippet(Snippet(title="loose", content="3"))

    assert [s.title for s in store.snippets_for_folder(folder.id)] == ["a", "b"]
    assert [s.title for s in store.snippets_for_folder(None)] == ["loose"]


def test_update_and_delete_snippet(store, data_dir, assets, settings):
    snippet = Snippet(title="sig", content="Regards")
    store.add_snippet(snippet)

    assert store.update_snippet(snippet.model_copy(update={"content": "Cheers"}))
    assert not store.update_snippet(Snippet(title="x", content="y"))
    assert ItemStore(data_dir, assets, settings).snippets()[0].content == "Cheers"

    assert store.delete_snippet(snippet.id)
    assert not store.delete_snippet(snippet.id)
    assert store.snippets() == []


def test_delete_folder_cascades_to_snippets(store, data_dir, assets, settings):
    folder = SnippetFolder(name="Work")
    other = SnippetFolder(name="Home", sortOrder=1)
    store.add_folder(folder)
    store.add_folder(other)
    store.add_snippet(Snippet(title="in", content="x", folderID=folder.id))
    store.add_snippet(Snippet(title="out", content="y", folderID=other.id))

    assert store.delete_folder(folder.id)
    assert not store.delete_folder(folder.id)

    reloaded = ItemStore(data_dir, assets, settings)
    assert [f.name for f in reloaded.folders()] == ["Home"]
    assert [s.title for s in reloaded.snippets()] == ["out"]


def test_subscribers_are_notified_until_unsubscribed(store):
    events = []
    unsubscribe = store.subscribe(events.append)

    store.insert(HistoryEntry.text("x"))
    store.add_snippet(Snippet(title="t", content="c"))
    folder = SnippetFolder(name="f")
    store.add_folder(folder)
    store.delete_folder(folder.id)
    unsubscribe()
    store.clear_unpinned()

    assert events == [HISTORY, SNIPPETS, FOLDERS, FOLDERS, SNIPPETS]


def test_failing_subscriber_does_not_break_others(store):
    events = []

    def broken(collection):
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(events.append)
    store.insert(HistoryEntry.text("x"))

    assert events == [HISTORY]
    assert len(store.history()) == 1


def test_failed_save_keeps_memory_state_and_previous_file(store, data_dir, monkeypatch):
    store.insert(HistoryEntry.text("first"))
    history_file = data_dir / "history.json"
    before = history_file.read_bytes()

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(storage_service.os, "replace", failing_replace)
    store.insert(HistoryEntry.text("second"))

    assert _texts(store) == ["second", "first"]
    assert history_file.read_bytes() == before
    assert not list(data_dir.glob("*.tmp"))
