from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, FrozenSet, Optional

from dotenv import load_dotenv

SettingsProvider = Callable[[], "Settings"]

DEFAULT_DATA_DIR = Path.home() / ".mediaclip"


def _to_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _to_float(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _to_id_set(value: Optional[str]) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    poll_interval: float = 0.5
    max_history_count: int = 30
    handle_duplicates: bool = True
    support_plain_text: bool = True
    support_rich_text: bool = True
    support_images: bool = True
    support_filenames: bool = True
    save_screenshots: bool = True
    excluded_app_ids: FrozenSet[str] = field(default_factory=frozenset)
    paste_after_selection: bool = True
    delete_after_paste: bool = False

    def __post_init__(self) -> None:
        if self.max_history_count < 1:
            object.__setattr__(self, "max_history_count", 1)
        if not isinstance(self.excluded_app_ids, frozenset):
            object.__setattr__(self, "excluded_app_ids",
                               frozenset(self.excluded_app_ids))
        object.__setattr__(self, "data_dir", Path(self.data_dir).expanduser().resolve())

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "Settings":
        if env_path is not None:
            load_dotenv(dotenv_path=env_path)
        else:
            load_dotenv()

        data_dir = os.getenv("MEDIACLIP_DATA_DIR")

        return cls(
            data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
            poll_interval=_to_float(
                os.getenv("MEDIACLIP_POLL_INTERVAL"), cls.poll_interval),
            max_history_count=_to_int(
                os.getenv("MEDIACLIP_MAX_HISTORY_COUNT"), cls.max_history_count),
            handle_duplicates=_to_bool(
                os.getenv("MEDIACLIP_HANDLE_DUPLICATES"), default=True),
            support_plain_text=_to_bool(
                os.getenv("MEDIACLIP_SUPPORT_PLAIN_TEXT"), default=True),
            support_rich_text=_to_bool(
                os.getenv("MEDIACLIP_SUPPORT_RICH_TEXT"), default=True),
            support_images=_to_bool(
                os.getenv("MEDIACLIP_SUPPORT_IMAGES"), default=True),
            support_filenames=_to_bool(
                os.getenv("MEDIACLIP_SUPPORT_FILENAMES"), default=True),
            save_screenshots=_to_bool(
                os.getenv("MEDIACLIP_SAVE_SCREENSHOTS"), default=True),
            excluded_app_ids=_to_id_set(os.getenv("MEDIACLIP_EXCLUDED_APPS")),
            paste_after_selection=_to_bool(
                os.getenv("MEDIACLIP_PASTE_AFTER_SELECTION"), default=True),
            delete_after_paste=_to_bool(
                os.getenv("MEDIACLIP_DELETE_AFTER_PASTE"), default=False),
        )

    def with_changes(self, **changes) -> "Settings":
        return replace(self, **changes)


def static_settings(settings: Settings) -> SettingsProvider:
    """Provider that always returns the same settings object."""
    return lambda: settings
