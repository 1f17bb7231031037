"""Parsers for chat export formats."""

from .base import ChatMessage, ParserRegistry, TranscriptParser, accumulate_turns, extract_text, map_role
from .chatgpt import ChatGPTParser
from .claude_code import ClaudeCodeParser
from .codex import CodexParser
from .json_export import JSONExportParser
from .markdown import MarkdownParser
from .normalizer import normalize
from .plain_text import PlainTextParser

__all__ = [
    "ChatGPTParser",
    "ChatMessage",
    "ClaudeCodeParser",
    "CodexParser",
    "JSONExportParser",
    "MarkdownParser",
    "ParserRegistry",
    "PlainTextParser",
    "TranscriptParser",
    "accumulate_turns",
    "extract_text",
    "map_role",
    "normalize",
]

# Register parsers; registration order is detection priority
ParserRegistry.register(ClaudeCodeParser())
ParserRegistry.register(CodexParser())
ParserRegistry.register(ChatGPTParser())
ParserRegistry.register(JSONExportParser())
ParserRegistry.register(MarkdownParser())
ParserRegistry.register(PlainTextParser())
