from mediaclip.models.clipboarditem import ContentType, HistoryEntry, new_id
from mediaclip.models.snippets import Snippet, SnippetFolder

__all__ = [
    'ContentType',
    'HistoryEntry',
    'Snippet',
    'SnippetFolder',
    'new_id',
]
