"""Tests for chat export normalization."""

import json
from unittest.mock import patch

import pytest

from vibe_history.errors import ParseFailure
from vibe_history.models import ASSISTANT, USER
from vibe_history.transcript import ChatGPTParser, normalize


class TestNormalizeFormats:
    """normalize() should detect each supported format."""

    def test_json_array(self) -> None:
        raw = json.dumps([
            {"role": "user", "content": "Add a retry to the fetcher"},
            {"role": "assistant", "content": "Added retry logic"},
        ]).encode()

        transcript = normalize(raw, "chat.json")

        assert transcript.format == "json"
        assert [m.role for m in transcript.messages] == [USER, ASSISTANT]

    def test_markdown_export(self) -> None:
        raw = b"**User**\n\nfix the navbar\n\n---\n\n**Cursor**\n\nUpdated navbar.tsx\n"

        transcript = normalize(raw, "cursor_chat.md")

        assert transcript.format == "cursor"
        assert len(transcript.messages) == 2

    def test_plain_text(self) -> None:
        transcript = normalize(b"User: hello\nAssistant: hi there\n", "notes.txt")

        assert transcript.format == "plain_text"
        assert [m.content for m in transcript.messages] == ["hello", "hi there"]

    def test_claude_code_log_without_hint(self) -> None:
        line = {"type": "user", "sessionId": "s1", "message": {"role": "user", "content": "refactor utils"}}

        transcript = normalize((json.dumps(line) + "\n").encode(), "upload")

        assert transcript.format == "claude_code"
        assert transcript.messages[0].content == "refactor utils"

    def test_file_name_is_only_a_hint(self) -> None:
        # Named like a Cursor export but actually plain text
        transcript = normalize(b"Human: what changed?\nAI: the parser\n", "cursor-export.md")

        assert transcript.format == "plain_text"

    def test_utf8_bom_is_accepted(self) -> None:
        transcript = normalize(b"\xef\xbb\xbf" + "User: héllo\nAssistant: ok\n".encode("utf-8"), "chat.txt")

        assert transcript.messages[0].content == "héllo"

    def test_indexes_are_dense_and_ordered(self) -> None:
        raw = json.dumps([
            {"role": "system", "content": "setup"},
            {"role": "user", "content": "one"},
            {"role": "assistant", "content": ""},
            {"role": "assistant", "content": "two"},
        ]).encode()

        transcript = normalize(raw, "chat.json")

        assert [(m.index, m.content) for m in transcript.messages] == [(0, "one"), (1, "two")]


class TestNormalizeFailures:
    """normalize() should fail closed with guidance."""

    def test_random_binary(self) -> None:
        raw = bytes(range(256)) * 8

        with pytest.raises(ParseFailure) as exc_info:
            normalize(raw, "chat.bin")

        assert "Supported formats" in exc_info.value.message

    def test_nul_bytes(self) -> None:
        with pytest.raises(ParseFailure):
            normalize(b"User: hi\x00\x00\x00", "chat.txt")

    def test_empty_file(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            normalize(b"   \n", "chat.txt")

        assert "empty" in exc_info.value.message

    def test_unstructured_text(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            normalize(b"Just some notes about my weekend.\nNothing else here.", "notes.txt")

        assert "no supported chat format" in exc_info.value.message
        assert exc_info.value.hint

    def test_detected_format_with_no_messages(self) -> None:
        raw = json.dumps([{"role": "user", "content": ""}, {"role": "assistant", "content": "   "}]).encode()

        with pytest.raises(ParseFailure):
            normalize(raw, "chat.json")

    @pytest.mark.parametrize(
        "export",
        [
            {"mapping": {"a": None}, "current_node": "a"},
            [{"mapping": {}, "create_time": "2024"}, {"mapping": {}, "create_time": 1.5}],
            {"mapping": {"a": [1]}, "current_node": "x"},
        ],
    )
    def test_malformed_chatgpt_export(self, export) -> None:
        """Structurally broken exports should fail with ParseFailure, nothing else."""
        with pytest.raises(ParseFailure):
            normalize(json.dumps(export).encode(), "conversations.json")

    def test_parser_error_falls_through_to_other_formats(self) -> None:
        with patch.object(ChatGPTParser, "detect", side_effect=TypeError("unexpected node")):
            transcript = normalize(b"User: hello\nAssistant: hi there\n", "conversations.json")

        assert transcript.format == "plain_text"


class TestNormalizeMetadata:
    """normalize() should carry export-level metadata."""

    def test_json_metadata(self) -> None:
        raw = json.dumps({"id": "conv-1", "model": "claude-3", "messages": [{"role": "user", "content": "hi"}]}).encode()

        transcript = normalize(raw, "chat.json")

        assert transcript.metadata == {"model": "claude-3", "conversation_id": "conv-1"}

    def test_plain_text_has_no_metadata(self) -> None:
        assert normalize(b"User: hello\nAssistant: hi\n", "chat.txt").metadata == {}
