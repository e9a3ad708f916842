from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from mediaclip.config import SettingsProvider
from mediaclip.models import HistoryEntry, Snippet, SnippetFolder
from mediaclip.utils.file_manager import AssetStore

logger = logging.getLogger(__name__)

HISTORY = "history"
SNIPPETS = "snippets"
FOLDERS = "folders"

TEXT_GROUP = "text"
MEDIA_GROUP = "media"

ChangeListener = Callable[[str], None]
Model = TypeVar("Model", bound=BaseModel)


class ItemStore:
    """Ordered clipboard history plus snippets and snippet folders.

    History is newest first. Every mutation rewrites the whole JSON file of
    the collection it touched and then notifies subscribers with the
    collection name. Reads hand out the stored snapshots, which are frozen
    models, so nothing outside the store can change them.

    All mutations go through one re-entrant lock.
    """

    def __init__(
        self,
        base_dir: Path,
        assets: AssetStore,
        settings: SettingsProvider,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.assets = assets
        self._settings = settings
        self._lock = threading.RLock()
        self._listeners: List[ChangeListener] = []

        self.history_file = self.base_dir / "history.json"
        self.snippets_file = self.base_dir / "snippets.json"
        self.folders_file = self.base_dir / "folders.json"

        self._history: List[HistoryEntry] = []
        self._snippets: List[Snippet] = []
        self._folders: List[SnippetFolder] = []
        self.history_intact = True
        self.load()

    # -- notifications ------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, *collections: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for collection in collections:
            for listener in listeners:
                try:
                    listener(collection)
                except Exception as e:
                    logger.error(f"Error in {collection} listener: {e}")

    # -- history ------------------------------------------------------------

    def history(self, group: Optional[str] = None) -> List[HistoryEntry]:
        with self._lock:
            items = list(self._history)
        if group == TEXT_GROUP:
            return [item for item in items if item.contentType.is_text]
        if group == MEDIA_GROUP:
            return [item for item in items if item.contentType.is_media]
        if group is not None:
            raise ValueError(f"Unknown history group: {group!r}")
        return items

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            for item in self._history:
                if item.id == entry_id:
                    return item
        return None

    def find_duplicate(self, entry: HistoryEntry) -> Optional[HistoryEntry]:
        if not entry.contentType.is_text or entry.textContent is None:
            return None
        with self._lock:
            for item in self._history:
                if (item.id != entry.id
                        and item.contentType == entry.contentType
                        and item.textContent == entry.textContent):
                    return item
        return None

    def insert(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._history.insert(0, entry)
            self._enforce_history_limit()
            self._save_history()
        logger.debug(f"Stored {entry.contentType.value} entry {entry.id}")
        self._notify(HISTORY)

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            removed = self._remove_entry(entry_id)
            if removed is None:
                return False
            self._save_history()
        self._notify(HISTORY)
        return True

    def clear_unpinned(self) -> int:
        with self._lock:
            unpinned = [item for item in self._history if not item.isPinned]
            self._history = [item for item in self._history if item.isPinned]
            self._release_assets(unpinned)
            self._save_history()
        logger.info(f"Cleared {len(unpinned)} history entries")
        self._notify(HISTORY)
        return len(unpinned)

    def toggle_pin(self, entry_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            for index, item in enumerate(self._history):
                if item.id == entry_id:
                    updated = item.with_pin(not item.isPinned)
                    self._history[index] = updated
                    self._save_history()
                    break
            else:
                return None
        self._notify(HISTORY)
        return updated

    def _remove_entry(self, entry_id: str) -> Optional[HistoryEntry]:
        for index, item in enumerate(self._history):
            if item.id == entry_id:
                del self._history[index]
                self._release_assets([item])
                return item
        return None

    def _release_assets(self, removed: Sequence[HistoryEntry]) -> None:
        # Size-matched videos can be shared by several entries.
        shared = {item.mediaFilePath for item in self._history if item.mediaFilePath}
        for item in removed:
            if item.mediaFilePath in shared:
                item = item.model_copy(update={"mediaFilePath": None})
            self.assets.delete_entry_assets(item)

    def _enforce_history_limit(self) -> None:
        limit = max(1, self._settings().max_history_count)
        unpinned = [item for item in self._history if not item.isPinned]
        if len(unpinned) <= limit:
            return

        excess = {item.id for item in unpinned[limit:]}
        self._history = [item for item in self._history if item.id not in excess]
        self._release_assets(unpinned[limit:])
        logger.debug(f"Evicted {len(excess)} entries over the history limit")

    # -- snippets -----------------------------------------------------------

    def snippets(self) -> List[Snippet]:
        with self._lock:
            return list(self._snippets)

    def snippets_for_folder(self, folder_id: Optional[str]) -> List[Snippet]:
        with self._lock:
            matching = [s for s in self._snippets if s.folderID == folder_id]
        return sorted(matching, key=lambda s: s.sortOrder)

    def add_snippet(self, snippet: Snippet) -> None:
        with self._lock:
            self._snippets.append(snippet)
            self._save_snippets()
        self._notify(SNIPPETS)

    def update_snippet(self, snippet: Snippet) -> bool:
        with self._lock:
            for index, existing in enumerate(self._snippets):
                if existing.id == snippet.id:
                    self._snippets[index] = snippet
                    self._save_snippets()
                    break
            else:
                return False
        self._notify(SNIPPETS)
        return True

    def delete_snippet(self, snippet_id: str) -> bool:
        with self._lock:
            remaining = [s for s in self._snippets if s.id != snippet_id]
            if len(remaining) == len(self._snippets):
                return False
            self._snippets = remaining
            self._save_snippets()
        self._notify(SNIPPETS)
        return True

    # -- folders ------------------------------------------------------------

    def folders(self) -> List[SnippetFolder]:
        with self._lock:
            return list(self._folders)

    def add_folder(self, folder: SnippetFolder) -> None:
        with self._lock:
            self._folders.append(folder)
            self._save_folders()
        self._notify(FOLDERS)

    def delete_folder(self, folder_id: str) -> bool:
        with self._lock:
            if not any(f.id == folder_id for f in self._folders):
                return False
            self._snippets = [s for s in self._snippets if s.folderID != folder_id]
            self._folders = [f for f in self._folders if f.id != folder_id]
            self._save_folders()
            self._save_snippets()
        self._notify(FOLDERS, SNIPPETS)
        return True

    # -- persistence --------------------------------------------------------

    def load(self) -> None:
        with self._lock:
            history = self._load(self.history_file, HistoryEntry)
            self.history_intact = history is not None
            self._history = history or []
            self._snippets = self._load(self.snippets_file, Snippet) or []
            self._folders = self._load(self.folders_file, SnippetFolder) or []
        logger.debug(
            f"Loaded {len(self._history)} history entries, "
            f"{len(self._snippets)} snippets, {len(self._folders)} folders")

    def _save_history(self) -> None:
        self._save(self.history_file, self._history)

    def _save_snippets(self) -> None:
        self._save(self.snippets_file, self._snippets)

    def _save_folders(self) -> None:
        self._save(self.folders_file, self._folders)

    @staticmethod
    def _load(path: Path, model: Type[Model]) -> Optional[List[Model]]:
        """Items stored in ``path``; ``None`` when the file exists but cannot be used."""
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Could not read {path.name}: {e}")
            return None

        try:
            return TypeAdapter(List[model]).validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring corrupt {path.name}: {e.error_count()} errors")
            return None

    @staticmethod
    def _save(path: Path, items: Sequence[BaseModel]) -> None:
        data: List[Dict] = [item.to_json_dict() for item in items]
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent,
                prefix=f".{path.stem}-", suffix=".tmp", delete=False,
            ) as handle:
                tmp_path = handle.name
                json.dump(data, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to save {path.name}: {e}")
            if tmp_path is not None:
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
