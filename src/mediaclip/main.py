#!/usr/bin/env python3

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from mediaclip.clipboard import ClipboardBackend, get_clipboard_backend
from mediaclip.config import Settings
from mediaclip.exceptions import MediaClipError
from mediaclip.models import HistoryEntry, Snippet, SnippetFolder
from mediaclip.services import ClipboardMonitor, ItemStore, PasteService
from mediaclip.utils.file_manager import AssetStore

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 60


class MediaClipApp:
    """Wires the services together in startup order.

    Asset directories are created first, then the item store loads its
    files, and only then is the clipboard backend opened.
    """

    def __init__(self, settings: Settings, backend: Optional[ClipboardBackend] = None):
        self.settings = settings
        self.assets = AssetStore(settings.data_dir)
        self.store = ItemStore(settings.data_dir, self.assets, self.get_settings)
        self._backend = backend
        self._monitor: Optional[ClipboardMonitor] = None
        self._paste_service: Optional[PasteService] = None
        self.running = False

    def get_settings(self) -> Settings:
        return self.settings

    @property
    def backend(self) -> ClipboardBackend:
        if self._backend is None:
            self._backend = get_clipboard_backend()
        return self._backend

    @property
    def monitor(self) -> ClipboardMonitor:
        if self._monitor is None:
            self._monitor = ClipboardMonitor(
                self.backend, self.store, self.assets, self.get_settings)
        return self._monitor

    @property
    def paste_service(self) -> PasteService:
        if self._paste_service is None:
            self._paste_service = PasteService(
                self.backend, self.monitor, self.store, self.get_settings)
        return self._paste_service

    def start(self) -> None:
        if self.running:
            return

        if self.store.history_intact:
            self.assets.remove_orphans(self.store.history())
        else:
            logger.warning("History file could not be loaded; keeping all stored media files")
        self.monitor.start()
        self.running = True
        print(f"MediaClip running, storing history in {self.settings.data_dir}. Press Ctrl+C to stop")

    def stop(self) -> None:
        if not self.running:
            return

        self.running = False
        if self._monitor is not None:
            self._monitor.stop()
        print("MediaClip stopped")

    def run_forever(self) -> None:
        self.start()

        try:
            while self.running:
                time.sleep(1.0)
        except KeyboardInterrupt:
            print("\nStopping...")
        finally:
            self.stop()


def format_entry(index: int, entry: HistoryEntry) -> str:
    if entry.contentType.is_text:
        first_line = " ".join((entry.textContent or "").split())
        label = first_line[:PREVIEW_CHARS] + ("..." if len(first_line) > PREVIEW_CHARS else "")
    else:
        label = entry.preview_text
    pin = "[pinned] " if entry.isPinned else ""
    return f"{index + 1:>3}. {pin}{label}  ({entry.contentType.display_name})"


def _entry_at(app: MediaClipApp, index: int) -> HistoryEntry:
    items = app.store.history()
    if not 1 <= index <= len(items):
        raise MediaClipError(f"No history entry #{index} (history has {len(items)} entries)")
    return items[index - 1]


def cmd_run(app: MediaClipApp, args: argparse.Namespace) -> int:
    def signal_handler(signum, frame):
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    app.run_forever()
    return 0


def cmd_list(app: MediaClipApp, args: argparse.Namespace) -> int:
    items = app.store.history(args.group)
    if not items:
        print("History is empty")
        return 0
    for index, entry in enumerate(items):
        print(format_entry(index, entry))
    return 0


def cmd_copy(app: MediaClipApp, args: argparse.Namespace) -> int:
    entry = _entry_at(app, args.index)
    if not app.paste_service.publish(entry):
        print(f"Could not copy entry #{args.index}", file=sys.stderr)
        return 1
    print(f"Copied: {format_entry(args.index - 1, entry)}")
    return 0


def cmd_delete(app: MediaClipApp, args: argparse.Namespace) -> int:
    entry = _entry_at(app, args.index)
    app.store.delete(entry.id)
    print(f"Deleted entry #{args.index}")
    return 0


def cmd_pin(app: MediaClipApp, args: argparse.Namespace) -> int:
    entry = _entry_at(app, args.index)
    updated = app.store.toggle_pin(entry.id)
    state = "Pinned" if updated is not None and updated.isPinned else "Unpinned"
    print(f"{state} entry #{args.index}")
    return 0


def cmd_clear(app: MediaClipApp, args: argparse.Namespace) -> int:
    removed = app.store.clear_unpinned()
    print(f"Removed {removed} entries")
    return 0


def cmd_usage(app: MediaClipApp, args: argparse.Namespace) -> int:
    print(f"Media storage: {app.assets.format_usage()}")
    return 0


def _folder_id(app: MediaClipApp, name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    for folder in app.store.folders():
        if folder.name == name or folder.id == name:
            return folder.id
    raise MediaClipError(f"No snippet folder named {name!r}")


def cmd_snippets(app: MediaClipApp, args: argparse.Namespace) -> int:
    if args.action == "add":
        folder_id = _folder_id(app, args.folder)
        existing = app.store.snippets_for_folder(folder_id)
        order = existing[-1].sortOrder + 1 if existing else 0
        snippet = Snippet(title=args.title, content=args.content,
                          folderID=folder_id, sortOrder=order)
        app.store.add_snippet(snippet)
        print(f"Added snippet {snippet.id}")
    elif args.action == "delete":
        if not app.store.delete_snippet(args.id):
            print(f"No snippet {args.id}", file=sys.stderr)
            return 1
        print(f"Deleted snippet {args.id}")
    elif args.action == "copy":
        snippet = next((s for s in app.store.snippets() if s.id == args.id), None)
        if snippet is None:
            print(f"No snippet {args.id}", file=sys.stderr)
            return 1
        return 0 if app.paste_service.publish_text(snippet.content) else 1
    else:
        for snippet in app.store.snippets_for_folder(None):
            print(f"{snippet.id}  {snippet.title}")
        for folder in app.store.folders():
            print(f"[{folder.name}]")
            for snippet in app.store.snippets_for_folder(folder.id):
                print(f"  {snippet.id}  {snippet.title}")
    return 0


def cmd_folders(app: MediaClipApp, args: argparse.Namespace) -> int:
    if args.action == "add":
        order = max((f.sortOrder for f in app.store.folders()), default=-1) + 1
        folder = SnippetFolder(name=args.name, sortOrder=order)
        app.store.add_folder(folder)
        print(f"Added folder {folder.id}")
    elif args.action == "delete":
        if not app.store.delete_folder(_folder_id(app, args.name)):
            return 1
        print(f"Deleted folder {args.name} and its snippets")
    else:
        for folder in sorted(app.store.folders(), key=lambda f: f.sortOrder):
            print(f"{folder.id}  {folder.name}")
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mediaclip",
        description="MediaClip - clipboard history for text, images and videos"
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory for history, snippets and media (default: ~/.mediaclip)"
    )

    parser.add_argument(
        "-i", "--poll-interval",
        type=float,
        default=None,
        help="Clipboard polling interval in seconds (default: 0.5)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    subparsers = parser.add_subparsers(dest="command")

    run = subparsers.add_parser("run", help="Watch the clipboard and record history")
    run.set_defaults(func=cmd_run)

    list_parser = subparsers.add_parser("list", help="Show clipboard history")
    list_parser.add_argument("--group", choices=["text", "media"], default=None)
    list_parser.set_defaults(func=cmd_list)

    for name, func, help_text in (
        ("copy", cmd_copy, "Put a history entry back on the clipboard"),
        ("delete", cmd_delete, "Delete a history entry"),
        ("pin", cmd_pin, "Pin or unpin a history entry"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("index", type=int, help="Entry number as shown by 'list'")
        sub.set_defaults(func=func)

    clear = subparsers.add_parser("clear", help="Delete all unpinned history entries")
    clear.set_defaults(func=cmd_clear)

    usage = subparsers.add_parser("usage", help="Show disk space used by media")
    usage.set_defaults(func=cmd_usage)

    snippets = subparsers.add_parser("snippets", help="Manage snippets")
    snippet_actions = snippets.add_subparsers(dest="action")
    snippet_actions.add_parser("list")
    add = snippet_actions.add_parser("add")
    add.add_argument("title")
    add.add_argument("content")
    add.add_argument("--folder", default=None, help="Folder name or id")
    for action in ("delete", "copy"):
        sub = snippet_actions.add_parser(action)
        sub.add_argument("id")
    snippets.set_defaults(func=cmd_snippets, action="list")

    folders = subparsers.add_parser("folders", help="Manage snippet folders")
    folder_actions = folders.add_subparsers(dest="action")
    folder_actions.add_parser("list")
    for action in ("add", "delete"):
        sub = folder_actions.add_parser(action)
        sub.add_argument("name")
    folders.set_defaults(func=cmd_folders, action="list")

    parser.set_defaults(func=cmd_run)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    settings = Settings.from_env()
    changes = {}
    if args.data_dir is not None:
        changes["data_dir"] = args.data_dir
    if args.poll_interval is not None:
        changes["poll_interval"] = args.poll_interval
    if changes:
        settings = settings.with_changes(**changes)

    try:
        app = MediaClipApp(settings)
        return args.func(app, args)
    except MediaClipError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
