"""Request models for the video endpoints.

Payloads use the editor's camelCase field names; snake_case is accepted too.
"""

import base64
import binascii
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tierlist_video.render.ranking import (
    AssignmentEvent,
    Item,
    NarrationSegment,
    RankingDocument,
    SegmentKind,
    Tier,
)
from tierlist_video.services.image_staging import decode_data_url


def decode_audio_blob(value: str) -> bytes:
    """Decode a ``data:audio/...;base64,`` URL or a bare base64 string."""
    if value.startswith("data:"):
        _, payload = decode_data_url(value)
        return payload
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 audio: {exc}") from exc


class ItemInput(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    image: str | None = None

    def to_domain(self) -> Item:
        return Item(id=self.id, name=self.name, image=self.image or None)


class TierInput(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    color: str = ""
    items: list[ItemInput] = Field(default_factory=list)

    def to_domain(self) -> Tier:
        return Tier(
            id=self.id,
            name=self.name,
            color=self.color,
            items=tuple(item.to_domain() for item in self.items),
        )


class DragHistoryEntryInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId")
    item_name: str = Field(default="", alias="itemName")
    target_tier_id: str = Field(..., alias="targetTierId")
    target_tier_name: str = Field(default="", alias="targetTierName")
    timestamp: float = Field(..., description="Milliseconds since epoch")

    def to_domain(self) -> AssignmentEvent:
        return AssignmentEvent(
            item_id=self.item_id,
            item_name=self.item_name,
            target_tier_id=self.target_tier_id,
            target_tier_name=self.target_tier_name,
            timestamp=self.timestamp,
        )


class RankingDataInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tiers: list[TierInput] = Field(default_factory=list)
    unranked_items: list[ItemInput] = Field(default_factory=list, alias="unrankedItems")
    drag_history: list[DragHistoryEntryInput] | None = Field(default=None, alias="dragHistory")

    def to_domain(self) -> RankingDocument:
        return RankingDocument(
            tiers=tuple(tier.to_domain() for tier in self.tiers),
            unranked_items=tuple(item.to_domain() for item in self.unranked_items),
            assignments=tuple(entry.to_domain() for entry in self.drag_history or ()),
        )


class AudioSectionInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: Literal["intro", "item", "conclusion"]
    text: str = ""
    audio_blob: str | None = Field(
        default=None,
        alias="audioBlob",
        description="Recorded narration as a base64 data URL",
    )
    duration: float = Field(default=0.0, description="Declared duration in seconds")
    is_tts: bool = Field(default=False, alias="isTTS")
    item_id: str | None = Field(default=None, alias="itemId")
    tier_id: str | None = Field(default=None, alias="tierId")

    @field_validator("audio_blob")
    @classmethod
    def validate_audio_blob(cls, v: str | None) -> str | None:
        if not v:
            return None
        decode_audio_blob(v)
        return v

    def to_domain(self) -> NarrationSegment:
        return NarrationSegment(
            id=self.id,
            kind=SegmentKind(self.type),
            text=self.text,
            audio=decode_audio_blob(self.audio_blob) if self.audio_blob else None,
            duration=self.duration,
            is_tts=self.is_tts,
            item_id=self.item_id,
            tier_id=self.tier_id,
        )


class GenerateVideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ranking_data: RankingDataInput = Field(..., alias="rankingData")
    audio_sections: list[AudioSectionInput] = Field(default_factory=list, alias="audioSections")

    def to_domain(self) -> tuple[RankingDocument, list[NarrationSegment]]:
        return self.ranking_data.to_domain(), [section.to_domain() for section in self.audio_sections]


class UploadImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_data: str = Field(..., alias="imageData")
    file_name: str | None = Field(default=None, alias="fileName")


class UploadImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    image_url: str = Field(..., alias="imageUrl")
    file_name: str = Field(..., alias="fileName")
