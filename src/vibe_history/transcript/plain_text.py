"""Parser for plain-text conversation logs.

Copy-pasted chats usually mark each turn with a speaker prefix:

    User: why does the build fail?
    Assistant: The import in app.py is circular...

The prefix may be followed by the first line of the turn; following lines
without a prefix continue the current turn.
"""

import re

from vibe_history.models import ASSISTANT, USER, ChatMessage
from vibe_history.transcript.base import TranscriptParser, accumulate_turns

USER_PREFIXES = ("User", "Human", "You", "Me", "Question", "Q")
ASSISTANT_PREFIXES = ("Assistant", "AI", "Bot", "ChatGPT", "Claude", "Cursor", "Copilot", "Answer", "Response", "A")

SPEAKER_LINE = re.compile(
    r"^(?:>\s*)?(?P<name>%s):\s*(?P<rest>.*)$" % "|".join(USER_PREFIXES + ASSISTANT_PREFIXES)
)
# Single-letter prefixes are too ambiguous to prove a transcript on their own
STRONG_NAMES = {name for name in USER_PREFIXES + ASSISTANT_PREFIXES if len(name) > 1}


def _classify(line: str) -> tuple[str, str] | None:
    match = SPEAKER_LINE.match(line)
    if not match:
        return None
    role = USER if match.group("name") in USER_PREFIXES else ASSISTANT
    return role, match.group("rest").strip()


class PlainTextParser(TranscriptParser):
    """Parser for speaker-prefixed plain-text chat logs."""

    format_name = "plain_text"
    file_hints = (".txt", ".log")

    def detect(self, text: str) -> bool:
        for line in text.splitlines():
            match = SPEAKER_LINE.match(line.strip())
            if match and match.group("name") in STRONG_NAMES:
                return True
        return False

    def parse(self, text: str) -> list[ChatMessage]:
        return accumulate_turns(text.splitlines(), _classify)
