"""Tests for decoding oracle output into links."""

import json
from datetime import datetime, timezone

import pytest

from vibe_history.oracle.decode import (
    decode_links,
    extract_json_array,
    link_id,
    validate_confidence,
)

RUN_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def entry(**overrides) -> dict:
    data = {
        "chatExcerpt": "User: fix login bug in auth.py",
        "codeChanges": [
            {"file": "auth.py", "changes": "Fixed session check", "timestamp": "2026-02-28T10:00:00Z", "commit": "abc123"}
        ],
        "reasoning": "The user asked for the fix that this commit makes",
        "confidence": 85,
        "timestamp": "2026-02-28T09:00:00Z",
    }
    data.update(overrides)
    return data


class TestExtractJsonArray:
    """Tests for extract_json_array()."""

    def test_bare_array(self) -> None:
        assert extract_json_array('[{"a": 1}]') == [{"a": 1}]

    def test_skips_citations_and_prose(self) -> None:
        text = 'As noted in [1], here is the result:\n[{"a": 1}]\nHope this helps [2].'

        assert extract_json_array(text) == [{"a": 1}]

    def test_markdown_fence(self) -> None:
        text = '```json\n[\n  {"a": 1}\n]\n```'

        assert extract_json_array(text) == [{"a": 1}]

    def test_empty_array_is_usable(self) -> None:
        assert extract_json_array("No links found: []") == []

    def test_no_array(self) -> None:
        assert extract_json_array("I could not find any links.") is None

    def test_truncated_array_is_unusable(self) -> None:
        """Arrays nested inside a cut-off answer must not be taken for the link list."""
        text = "[" + json.dumps(entry()) + ', {"chatExcerpt": "b", "codeCh'

        assert extract_json_array(text) is None

    def test_skips_bracketed_prose(self) -> None:
        text = 'I checked [some of the] commits, results: [{"a": 1}]'

        assert extract_json_array(text) == [{"a": 1}]

    def test_brackets_inside_strings_are_ignored(self) -> None:
        text = 'See [the "]" case and more] then [{"a": "x]"}]'

        assert extract_json_array(text) == [{"a": "x]"}]


class TestValidateConfidence:
    """Tests for validate_confidence()."""

    @pytest.mark.parametrize("value,expected", [(0, 0), (85, 85), (100, 100), (85.0, 85)])
    def test_accepts_integral_values_in_range(self, value, expected) -> None:
        assert validate_confidence(value) == expected

    @pytest.mark.parametrize("value", [-1, 101, 150, 85.5, True, False, "85", None])
    def test_rejects_everything_else(self, value) -> None:
        assert validate_confidence(value) is None


class TestDecodeLinks:
    """Tests for decode_links()."""

    def test_decodes_valid_entries(self) -> None:
        text = "Here is my analysis:\n" + json.dumps([entry(), entry(confidence=40)])

        result = decode_links(text, RUN_AT)

        assert result.ok
        assert result.rejected == 0
        assert [link.confidence for link in result.links] == [85, 40]
        change = result.links[0].code_changes[0]
        assert (change.file, change.description, change.commit_sha) == ("auth.py", "Fixed session check", "abc123")

    def test_ids_are_unique_and_ignore_oracle_ids(self) -> None:
        text = json.dumps([entry(id="dup"), entry(id="dup"), entry(id="dup")])

        result = decode_links(text, RUN_AT)

        ids = [link.id for link in result.links]
        assert len(set(ids)) == 3
        assert ids[0] == link_id(RUN_AT, 0)
        assert "dup" not in ids

    def test_rejects_invalid_entries_individually(self) -> None:
        text = json.dumps([
            entry(),
            entry(confidence=150),
            entry(confidence="high"),
            entry(confidence=True),
            entry(chatExcerpt=""),
            entry(reasoning=None),
            entry(codeChanges=[]),
            entry(codeChanges=[{"changes": "no file"}]),
            "not an object",
            entry(confidence=10),
        ])

        result = decode_links(text, RUN_AT)

        assert result.ok
        assert [link.confidence for link in result.links] == [85, 10]
        assert result.rejected == 8

    def test_drops_invalid_code_changes_but_keeps_entry(self) -> None:
        changes = [{"file": "a.py", "changes": "x"}, {"changes": "missing file"}, "junk"]

        result = decode_links(json.dumps([entry(codeChanges=changes)]), RUN_AT)

        assert [c.file for c in result.links[0].code_changes] == ["a.py"]

    def test_missing_timestamp_defaults_to_run_time(self) -> None:
        data = entry()
        del data["timestamp"]

        result = decode_links(json.dumps([data]), RUN_AT)

        assert result.links[0].timestamp == RUN_AT.isoformat()

    def test_link_ids_follow_accepted_order(self) -> None:
        text = json.dumps([entry(confidence=999), entry()])

        result = decode_links(text, RUN_AT)

        assert [link.id for link in result.links] == [link_id(RUN_AT, 0)]

    def test_unusable_response(self) -> None:
        result = decode_links("Sorry, I can't help with that.", RUN_AT)

        assert not result.ok
        assert result.links == []
        assert result.error

    def test_empty_response(self) -> None:
        assert not decode_links("", RUN_AT).ok

    def test_link_id_format(self) -> None:
        assert link_id(RUN_AT, 2) == f"link-{int(RUN_AT.timestamp() * 1000)}-2"

    def test_truncated_response_is_unusable(self) -> None:
        text = "[" + json.dumps(entry()) + ', {"chatExcerpt": "b", "codeCh'

        result = decode_links(text, RUN_AT)

        assert not result.ok
        assert result.links == []

    def test_timestamps_are_normalized(self) -> None:
        result = decode_links(json.dumps([entry()]), RUN_AT)

        link = result.links[0]
        assert link.timestamp == "2026-02-28T09:00:00+00:00"
        assert link.code_changes[0].timestamp == "2026-02-28T10:00:00+00:00"

    def test_unparseable_link_timestamp_falls_back_to_run_time(self) -> None:
        result = decode_links(json.dumps([entry(timestamp="yesterday-ish")]), RUN_AT)

        assert result.links[0].timestamp == RUN_AT.isoformat()

    def test_unparseable_code_change_timestamp_is_dropped(self) -> None:
        changes = [{"file": "auth.py", "changes": "Fixed session check", "timestamp": "last tuesday"}]

        result = decode_links(json.dumps([entry(codeChanges=changes)]), RUN_AT)

        assert result.ok
        assert result.links[0].code_changes[0].timestamp is None
