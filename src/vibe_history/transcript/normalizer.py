"""Format detection and normalization of raw chat exports."""

from vibe_history.errors import ParseFailure
from vibe_history.logging import get_logger
from vibe_history.models import ChatMessage, ParsedTranscript
from vibe_history.transcript.base import ParserRegistry

logger = get_logger("transcript")

SUPPORTED_FORMATS = (
    "Claude Code session logs (.jsonl)",
    "Codex rollout logs (.jsonl)",
    "ChatGPT data export (conversations.json)",
    "JSON arrays of {role, content} messages",
    "Cursor Markdown exports (**User** / **Cursor** sections)",
    "plain text with 'User:' / 'Assistant:' prefixes",
)

# Share of control characters above which input is treated as binary
MAX_CONTROL_RATIO = 0.05

# Raised by parsers on exports whose structure deviates from the format
MALFORMED_INPUT_ERRORS = (ValueError, TypeError, AttributeError, KeyError, IndexError, RecursionError)


def _decode(raw: bytes, file_name: str) -> str:
    """Decode an upload as UTF-8 text, rejecting binary content."""
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ParseFailure(_failure_message(file_name, len(raw), "it is not UTF-8 text")) from None

    if "\x00" in text:
        raise ParseFailure(_failure_message(file_name, len(raw), "it contains binary data"))

    control = sum(1 for ch in text if ord(ch) < 32 and ch not in "\t\n\r\f")
    if text and control / len(text) > MAX_CONTROL_RATIO:
        raise ParseFailure(_failure_message(file_name, len(raw), "it contains binary data"))

    return text.strip()


def _failure_message(file_name: str, size: int, reason: str) -> str:
    formats = "; ".join(SUPPORTED_FORMATS)
    return (
        f"Could not read chat history from {file_name or 'the uploaded file'} ({size} bytes): {reason}. "
        f"Supported formats: {formats}."
    )


def normalize(raw: bytes, file_name: str = "") -> ParsedTranscript:
    """Parse a chat export of unknown format into a transcript.

    The file name only changes the order in which formats are tried. A
    format whose detector fires but which yields no messages falls through
    to the remaining formats.

    Args:
        raw: Uploaded file content
        file_name: Original file name, used as a format hint

    Returns:
        ParsedTranscript with at least one message

    Raises:
        ParseFailure: If no supported format yields any messages
    """
    text = _decode(raw, file_name)
    if not text:
        raise ParseFailure(_failure_message(file_name, len(raw), "the file is empty"))

    for parser in ParserRegistry.candidates(file_name):
        try:
            if not parser.detect(text):
                continue
            messages, metadata = parser.parse_with_metadata(text)
        except MALFORMED_INPUT_ERRORS as e:
            logger.warning(
                "Parser failed on malformed input: format=%s file=%s error=%s",
                parser.format_name,
                file_name,
                type(e).__name__,
            )
            continue

        if not messages:
            logger.debug("Format detected but no messages parsed: format=%s file=%s", parser.format_name, file_name)
            continue

        # Parsers index densely already; reindex in case one skipped entries
        messages = [
            ChatMessage(role=m.role, content=m.content, index=i, timestamp=m.timestamp)
            for i, m in enumerate(messages)
        ]
        logger.info(
            "Parsed chat export: format=%s messages=%d file=%s",
            parser.format_name,
            len(messages),
            file_name,
        )
        return ParsedTranscript(
            format=parser.format_name,
            messages=tuple(messages),
            metadata=metadata,
        )

    raise ParseFailure(_failure_message(file_name, len(raw), "no supported chat format was recognised"))
