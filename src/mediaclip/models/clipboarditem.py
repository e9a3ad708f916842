from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import ulid
from pydantic import BaseModel, ConfigDict, Field, model_validator


def new_id() -> str:
    return str(ulid.new())


class ContentType(str, Enum):
    PLAIN_TEXT = "plainText"
    RICH_TEXT = "richText"
    IMAGE = "image"
    VIDEO = "video"

    @property
    def display_name(self) -> str:
        return {
            ContentType.PLAIN_TEXT: "Text",
            ContentType.RICH_TEXT: "Rich Text",
            ContentType.IMAGE: "Image",
            ContentType.VIDEO: "Video",
        }[self]

    @property
    def is_text(self) -> bool:
        return self in (ContentType.PLAIN_TEXT, ContentType.RICH_TEXT)

    @property
    def is_media(self) -> bool:
        return self in (ContentType.IMAGE, ContentType.VIDEO)


class HistoryEntry(BaseModel):
    """Immutable snapshot of one captured clipboard event.

    Exactly one payload field is set and it matches ``contentType``:
    ``textContent`` for text kinds, ``imageFileName`` for images and
    ``mediaFilePath`` for videos. The only field that changes over an
    entry's life is ``isPinned``, and the store does that by replacing
    the snapshot.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str = Field(default_factory=new_id)
    contentType: ContentType
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    textContent: Optional[str] = None
    imageFileName: Optional[str] = None
    mediaFilePath: Optional[str] = None
    thumbnailFileName: Optional[str] = None
    isPinned: bool = False

    @model_validator(mode="after")
    def _check_payload(self) -> "HistoryEntry":
        present = {
            "textContent": self.textContent is not None,
            "imageFileName": self.imageFileName is not None,
            "mediaFilePath": self.mediaFilePath is not None,
        }
        if sum(present.values()) != 1:
            raise ValueError(
                "exactly one of textContent, imageFileName, mediaFilePath must be set")

        if self.contentType.is_text:
            expected = "textContent"
        elif self.contentType is ContentType.IMAGE:
            expected = "imageFileName"
        else:
            expected = "mediaFilePath"
        if not present[expected]:
            raise ValueError(
                f"{self.contentType.value} entries carry their payload in {expected}")

        if self.thumbnailFileName is not None and not self.contentType.is_media:
            raise ValueError("only image and video entries have thumbnails")
        return self

    @classmethod
    def text(cls, text: str, rich: bool = False) -> "HistoryEntry":
        kind = ContentType.RICH_TEXT if rich else ContentType.PLAIN_TEXT
        return cls(contentType=kind, textContent=text)

    @classmethod
    def image(cls, file_name: str, thumbnail: Optional[str] = None) -> "HistoryEntry":
        return cls(contentType=ContentType.IMAGE, imageFileName=file_name,
                   thumbnailFileName=thumbnail)

    @classmethod
    def video(cls, path: str, thumbnail: Optional[str] = None) -> "HistoryEntry":
        return cls(contentType=ContentType.VIDEO, mediaFilePath=path,
                   thumbnailFileName=thumbnail)

    @property
    def preview_text(self) -> str:
        if self.contentType.is_text:
            return self.textContent or ""
        return self.contentType.display_name

    def with_pin(self, pinned: bool) -> "HistoryEntry":
        return self.model_copy(update={"isPinned": pinned})

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
