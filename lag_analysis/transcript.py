"""
Transcript parsing.

Stored transcripts are JSON objects of the form {"items": [...]}. Rows come from
many agent versions and some are truncated or hand-edited, so parsing never
raises: anything unusable collapses to an empty transcript.
"""

import json
from dataclasses import dataclass, field
from typing import Any, List, Union

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from .models import Transcript, TurnItem

_item_adapter = TypeAdapter(TurnItem)


@dataclass(frozen=True)
class ParsedTranscript:
    transcript: Transcript
    # Entries in the stored items list, including any that were skipped
    raw_item_count: int = 0

    @property
    def items(self) -> List[Any]:
        return self.transcript.items

    @property
    def is_empty(self) -> bool:
        return not self.transcript.items


@dataclass(frozen=True)
class EmptyTranscript:
    reason: str
    transcript: Transcript = field(default_factory=Transcript)
    raw_item_count: int = 0

    @property
    def items(self) -> List[Any]:
        return []

    @property
    def is_empty(self) -> bool:
        return True


TranscriptParseResult = Union[ParsedTranscript, EmptyTranscript]


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        return json.loads(raw)
    return raw


def parse_transcript(raw: Any) -> TranscriptParseResult:
    """Parse a serialized transcript into typed turn items.

    Accepts a JSON string, bytes, an already-decoded dict, or None. Items that
    fail validation (unknown type, message without a role) are skipped one by
    one so a single bad turn does not hide the rest of the call.
    """
    if raw is None or (isinstance(raw, (str, bytes, bytearray)) and not raw.strip()):
        return EmptyTranscript(reason="empty")

    try:
        data = _decode(raw)
    except (ValueError, RecursionError) as e:
        logger.debug(f"Unparseable transcript: {e}")
        return EmptyTranscript(reason="invalid_json")

    if not isinstance(data, dict):
        return EmptyTranscript(reason="not_an_object")

    raw_items = data.get("items")
    if not raw_items:
        return EmptyTranscript(reason="missing_items")
    if not isinstance(raw_items, list):
        return EmptyTranscript(reason="items_not_a_list")

    items = []
    skipped = 0
    for raw_item in raw_items:
        try:
            items.append(_item_adapter.validate_python(raw_item))
        except ValidationError:
            skipped += 1

    if skipped:
        logger.debug(f"Skipped {skipped}/{len(raw_items)} malformed transcript items")

    return ParsedTranscript(transcript=Transcript(items=items), raw_item_count=len(raw_items))
