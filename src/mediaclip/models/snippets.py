from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mediaclip.models.clipboarditem import new_id


class SnippetFolder(BaseModel):
    """User-defined group of snippets."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    sortOrder: int = 0

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class Snippet(BaseModel):
    """Reusable piece of user-authored text, optionally inside a folder."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    title: str
    content: str
    folderID: Optional[str] = None
    sortOrder: int = 0

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
