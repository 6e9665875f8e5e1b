"""
Purpose:
- Turn raw model output into core types.
    parse_tags()           : free-text analysis -> ordered Tag list
    parse_caption_result() : JSON-mode generation -> CaptionResult (or MalformedResponse)
"""

from __future__ import annotations
import json
import re
from typing import List
from pydantic import ValidationError
from .errors import MalformedResponse
from .schema import CaptionIdea, CaptionResult, Tag

# "1. ", "2) " enumeration, then "- " / "• " / "* " bullets, then the
# ANALYSIS_PROMPT labels ("Subject: ..."), each optional and in that order
_ENUM_PREFIX = re.compile(r"^\s*\d+[.)](?!\d)\s*")
_BULLET_PREFIX = re.compile(r"^[-•*]\s*")
_LABEL_PREFIX = re.compile(r"^(Setting|Activity|Subject|People|Visual Effects|Summary):\s*", re.IGNORECASE)

def parse_tags(analysis: str) -> List[Tag]:
    tags: List[Tag] = []
    for line in (analysis or "").splitlines():
        label = _ENUM_PREFIX.sub("", line.strip())
        label = _BULLET_PREFIX.sub("", label)
        label = _LABEL_PREFIX.sub("", label).strip()
        if label:
            tags.append(Tag(label=label))
    return tags

def parse_caption_result(content: str) -> CaptionResult:
    try:
        data = json.loads(content or "")
    except ValueError as e:
        raise MalformedResponse("Failed to parse captioning response") from e

    if not isinstance(data, dict):
        raise MalformedResponse()

    main = data.get("mainCaption")
    ideas = data.get("captionIdeas")
    if not isinstance(main, str) or not main.strip():
        raise MalformedResponse("Response is missing mainCaption")
    if not isinstance(ideas, list):
        raise MalformedResponse("Response is missing captionIdeas")

    try:
        return CaptionResult(
            main_caption=main.strip(),
            caption_ideas=[CaptionIdea.from_raw(item) for item in ideas],
        )
    except (ValueError, ValidationError) as e:
        raise MalformedResponse(f"Invalid caption idea: {e}") from e
