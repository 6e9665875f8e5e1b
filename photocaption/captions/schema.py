"""
Purpose:
- Pydantic models for the captioning core so requests, cache entries and API
  responses share one self-documenting shape.
- Caption ideas arrive either as bare strings or as objects; both are folded into
  CaptionIdea at the parse boundary (see CaptionIdea.from_raw).
"""

from __future__ import annotations
import json
from enum import Enum
from typing import Any, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

class Mode(str, Enum):
    AUTO = "auto"
    CUSTOM = "custom"

class Tone(str, Enum):
    SARCASTIC = "sarcastic"
    DEADPAN = "deadpan"
    ORIGINAL = "original"
    UNEXPECTED = "unexpected"
    DARK_HUMOR = "darkHumor"

class ImagePayload(BaseModel):
    """
    Base64 (or data-URI) image plus the caller's stable id.
    The id is assigned by the caller, never derived from the bytes.
    """
    model_config = ConfigDict(frozen=True)

    data: str = Field(..., min_length=1, description="base64 string or data: URI")
    image_id: Optional[str] = None

class GenerationOptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=True, validate_default=True)

    mode: Mode = Mode.AUTO
    location: Optional[str] = None
    tone: Tone = Tone.ORIGINAL
    additional_info: Optional[str] = Field(default=None, alias="additionalInfo")
    # custom mode: caller-seeded labels appended to the detected tags
    tags: Tuple[str, ...] = ()

    def fingerprint(self) -> str:
        """Deterministic serialization used as the in-memory cache key."""
        return json.dumps(self.model_dump(by_alias=True, mode="json"), sort_keys=True, separators=(",", ":"))

class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str

class CaptionIdea(BaseModel):
    model_config = ConfigDict(frozen=True)

    caption: str
    concept: Optional[str] = None
    hashtag: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "CaptionIdea":
        """
        Normalize one idea from the model's JSON:
        - "text"                      -> caption only
        - {"caption", "concept"?, "hashtag"?} -> trimmed, blanks become None
        Raises ValueError for anything else.
        """
        if isinstance(raw, str):
            return cls(caption=raw.strip())
        if isinstance(raw, dict):
            caption = raw.get("caption")
            if not isinstance(caption, str):
                raise ValueError("caption idea without a caption string")
            return cls(
                caption=caption.strip(),
                concept=_clean_optional(raw.get("concept")),
                hashtag=_clean_optional(raw.get("hashtag")),
            )
        raise ValueError(f"unsupported caption idea: {type(raw).__name__}")

def _clean_optional(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None

class CaptionResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    main_caption: str = Field(..., alias="mainCaption")
    caption_ideas: List[CaptionIdea] = Field(default_factory=list, alias="captionIdeas")

class CacheEntry(BaseModel):
    """What both cache tiers hold for an image."""
    model_config = ConfigDict(frozen=True)

    tags: List[Tag] = Field(default_factory=list)
    captions: Optional[CaptionResult] = None

class GenerationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    tags: List[Tag]
    captions: CaptionResult

    def to_cache_entry(self) -> CacheEntry:
        return CacheEntry(tags=self.tags, captions=self.captions)

class GenerationOutcome(BaseModel):
    """
    Result-style wrapper: exactly one of result / error_kind is set.
    """
    ok: bool
    result: Optional[GenerationResult] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    cached: bool = False
