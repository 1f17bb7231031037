"""Extraction and validation of links from free-text oracle output.

The oracle is asked for a bare JSON array but may wrap it in prose or a
Markdown fence, truncate it, or return entries of the wrong shape. Decoding
therefore runs in two stages:

1. Extraction: the first well-formed JSON array in the text that is empty
   or holds at least one object. Citations such as "[1]" are skipped, and
   so is everything inside a bracket that does not parse, so the inner
   arrays of a truncated answer are never mistaken for the link list.
   No such array means the whole response is unusable.
2. Validation: each entry is checked on its own and skipped when invalid,
   so one bad entry never costs the others.

Timestamps are normalized to ISO 8601 UTC. An unparseable link timestamp
falls back to the run timestamp; an unparseable code-change timestamp is
dropped.

Link ids are assigned here from the run timestamp and the entry's position
among the accepted entries. Ids supplied by the oracle are ignored.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from vibe_history.logging import get_logger
from vibe_history.models import CodeChange, VibeLink
from vibe_history.transcript.base import parse_timestamp

logger = get_logger("decode")

MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100

_decoder = json.JSONDecoder()


@dataclass
class DecodeResult:
    """Outcome of decoding one oracle response."""

    ok: bool
    links: list[VibeLink] = field(default_factory=list)
    rejected: int = 0
    error: str | None = None


def _bracket_end(text: str, start: int) -> int:
    """Index just past the bracket opened at start, or len(text) if it never closes.

    Brackets inside JSON strings are ignored.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i + 1
    return len(text)


def extract_json_array(text: str) -> list | None:
    """Return the first usable JSON array embedded in text, or None."""
    start = text.find("[")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except ValueError:
            start = text.find("[", _bracket_end(text, start))
            continue
        if isinstance(value, list) and (not value or any(isinstance(item, dict) for item in value)):
            return value
        start = text.find("[", start + 1)
    return None


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def validate_confidence(value: Any) -> int | None:
    """Return the confidence as an int, or None if it is unusable.

    Integral numbers in [0, 100] are accepted (85 and 85.0). Booleans,
    strings, fractions and out-of-range values are rejected, never clamped.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    confidence = int(value)
    if confidence < MIN_CONFIDENCE or confidence > MAX_CONFIDENCE:
        return None
    return confidence


def validate_code_change(value: Any) -> CodeChange | None:
    if not isinstance(value, dict):
        return None
    file = _non_empty_str(value.get("file"))
    if file is None:
        return None
    description = value.get("changes", value.get("description", ""))
    return CodeChange(
        file=file,
        description=description.strip() if isinstance(description, str) else "",
        timestamp=parse_timestamp(value.get("timestamp")),
        commit_sha=_non_empty_str(value.get("commit", value.get("commitSha"))),
    )


def validate_entry(entry: Any, assigned_id: str, default_timestamp: str) -> tuple[VibeLink | None, str | None]:
    """Validate one candidate link.

    Returns:
        (link, None) when valid, (None, reason) otherwise
    """
    if not isinstance(entry, dict):
        return None, "not an object"

    excerpt = _non_empty_str(entry.get("chatExcerpt"))
    if excerpt is None:
        return None, "missing chatExcerpt"

    reasoning = _non_empty_str(entry.get("reasoning"))
    if reasoning is None:
        return None, "missing reasoning"

    confidence = validate_confidence(entry.get("confidence"))
    if confidence is None:
        return None, f"invalid confidence {entry.get('confidence')!r}"

    raw_changes = entry.get("codeChanges")
    if not isinstance(raw_changes, list):
        return None, "codeChanges is not a list"
    changes = [c for c in (validate_code_change(item) for item in raw_changes) if c is not None]
    if not changes:
        return None, "no valid codeChanges"

    return (
        VibeLink(
            id=assigned_id,
            chat_excerpt=excerpt,
            code_changes=changes,
            reasoning=reasoning,
            confidence=confidence,
            timestamp=parse_timestamp(entry.get("timestamp")) or default_timestamp,
        ),
        None,
    )


def link_id(run_at: datetime, ordinal: int) -> str:
    """Id for the ordinal-th accepted link of a run."""
    return f"link-{int(run_at.timestamp() * 1000)}-{ordinal}"


def decode_links(text: str, run_at: datetime | None = None) -> DecodeResult:
    """Decode and validate oracle output into links.

    Never raises for malformed output: an unusable response yields
    DecodeResult(ok=False) and invalid entries are counted in `rejected`.

    Args:
        text: Raw oracle response
        run_at: Run timestamp, used for link ids and missing link timestamps

    Returns:
        DecodeResult with the accepted links in oracle order
    """
    if run_at is None:
        run_at = datetime.now(timezone.utc)

    entries = extract_json_array(text or "")
    if entries is None:
        return DecodeResult(ok=False, error="no JSON array found in oracle response")

    default_timestamp = run_at.isoformat()
    links: list[VibeLink] = []
    rejected = 0
    for position, entry in enumerate(entries):
        link, reason = validate_entry(entry, link_id(run_at, len(links)), default_timestamp)
        if link is None:
            rejected += 1
            logger.debug("Rejected oracle entry: position=%d reason=%s", position, reason)
            continue
        links.append(link)

    if rejected:
        logger.warning("Rejected malformed oracle entries: accepted=%d rejected=%d", len(links), rejected)

    return DecodeResult(ok=True, links=links, rejected=rejected)
