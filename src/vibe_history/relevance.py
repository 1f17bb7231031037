"""Heuristic selection of chat messages that discuss code."""

import re

from vibe_history.models import ChatMessage

CODE_FENCE = re.compile(r"```|~~~")
INLINE_CODE = re.compile(r"`[^`\n]+`")
FILE_PATH = re.compile(
    r"(?:^|[\s'\"(\[])(?:[\w.-]+/)*[\w-]+\.(?:py|pyi|ts|tsx|js|jsx|mjs|cjs|go|rs|java|kt|kts|c|cc|cpp|h|hpp|cs|rb|php|swift|scala|sql|sh|vue|svelte|css|scss|html)\b"
)
DIFF_MARKER = re.compile(r"^(?:diff --git |@@ -\d+|\+\+\+ |--- a/)", re.MULTILINE)
STACK_TRACE = re.compile(r"Traceback \(most recent call last\)|^\s+at [\w.$<>]+\(|Error: ", re.MULTILINE)
CODE_VOCABULARY = re.compile(
    r"\b(?:implement(?:s|ed|ing|ation)?|refactor(?:s|ed|ing)?|fix(?:es|ed|ing)?|bug(?:s|fix)?|"
    r"error|exception|crash(?:es|ed)?|function|method|class|component|endpoint|route|api|"
    r"database|query|schema|migration|compile[sd]?|build|deploy|test(?:s|ing)?|import|"
    r"variable|module|package|dependency|commit|merge|branch|regression)\b",
    re.IGNORECASE,
)


def is_code_related(message: ChatMessage) -> bool:
    """Whether a message plausibly discusses code or a code change."""
    content = message.content
    return bool(
        CODE_FENCE.search(content)
        or INLINE_CODE.search(content)
        or FILE_PATH.search(content)
        or DIFF_MARKER.search(content)
        or STACK_TRACE.search(content)
        or CODE_VOCABULARY.search(content)
    )


def filter_relevant(messages: list[ChatMessage] | tuple[ChatMessage, ...]) -> list[ChatMessage]:
    """Select the code-related messages, preserving order.

    May return an empty list; callers decide how to fall back.
    """
    return [message for message in messages if is_code_related(message)]
