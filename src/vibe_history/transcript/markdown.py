"""Parser for Markdown conversation logs.

Cursor's "Export chat" writes Markdown such as:

    # Fix login redirect
    _Exported on 10/2/2025 at 14:03:11 GMT from Cursor (1.7.28)_

    ---

    **User**

    the login page loops forever

    ---

    **Cursor**

    The redirect in `middleware.ts` ...

Other tools use headers ("## User", "# Assistant") instead of bold names.
"""

import re

from vibe_history.models import ASSISTANT, USER, ChatMessage
from vibe_history.transcript.base import TranscriptParser, accumulate_turns

BOLD_SPEAKER = re.compile(r"^\*\*(User|Human|You|Assistant|AI|Cursor|Claude|ChatGPT)\*\*:?$", re.IGNORECASE)
HEADER_SPEAKER = re.compile(r"^#{1,6}\s*(User|Human|You|Assistant|AI|Cursor|Claude|ChatGPT)\s*:?\s*$", re.IGNORECASE)
USER_NAMES = {"user", "human", "you"}


def _speaker_role(name: str) -> str:
    return USER if name.lower() in USER_NAMES else ASSISTANT


def _classify(line: str) -> tuple[str, str] | None:
    match = BOLD_SPEAKER.match(line)
    if match:
        return _speaker_role(match.group(1)), ""
    match = HEADER_SPEAKER.match(line)
    if match:
        return _speaker_role(match.group(1)), ""
    return None


def _skip(line: str) -> bool:
    return line.startswith("_Exported") or line == "---"


class MarkdownParser(TranscriptParser):
    """Parser for Cursor-style Markdown chat exports."""

    format_name = "cursor"
    file_hints = ("cursor", ".md", ".markdown")

    def detect(self, text: str) -> bool:
        return any(_classify(line.strip()) for line in text.splitlines())

    def parse(self, text: str) -> list[ChatMessage]:
        return accumulate_turns(text.splitlines(), _classify, _skip)
