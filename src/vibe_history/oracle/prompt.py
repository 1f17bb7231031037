"""Prompt construction for the correlation oracle."""

from vibe_history.models import USER, ChatMessage, Commit

DEFAULT_MESSAGE_CHAR_LIMIT = 500

TASK = """# Task:
Identify links between conversations and code changes. For each meaningful connection you find:
1. Extract a relevant excerpt from the conversation (50-150 words)
2. List the related code changes (files and what changed)
3. Explain the reasoning for the link
4. Assign a confidence score (0-100)

Focus on:
- User requests that led to code changes
- Discussions about bugs that were fixed
- Feature implementations that were discussed
- Refactoring conversations

Return your analysis as a JSON array of objects with this structure:
[
  {
    "chatExcerpt": "The conversation excerpt",
    "codeChanges": [
      {
        "file": "path/to/file.ts",
        "changes": "Brief description of what changed",
        "timestamp": "ISO date string",
        "commit": "commit SHA"
      }
    ],
    "reasoning": "Explanation of why these are linked",
    "confidence": 85,
    "timestamp": "ISO date of the conversation or commit"
  }
]

Return ONLY the JSON array, no other text."""


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def render_message(position: int, message: ChatMessage, char_limit: int = DEFAULT_MESSAGE_CHAR_LIMIT) -> str:
    speaker = "User" if message.role == USER else "Assistant"
    return f"[Message {position}] {speaker}: {truncate(message.content, char_limit)}"


def render_commit(position: int, commit: Commit) -> str:
    files = ", ".join(f.path for f in commit.files)
    return "\n".join([
        f"[Commit {position}]",
        f"SHA: {commit.sha}",
        f"Date: {commit.authored_at.isoformat()}",
        f"Message: {commit.message}",
        f"Files changed: {files}",
        f"Changes: +{commit.lines_added} -{commit.lines_removed}",
    ])


def build_prompt(
    messages: list[ChatMessage],
    commits: list[Commit],
    repository_label: str,
    message_char_limit: int = DEFAULT_MESSAGE_CHAR_LIMIT,
) -> str:
    """Build the correlation prompt.

    Each message is capped at `message_char_limit` characters, so the
    prompt grows with the number of messages and commits but not with
    their length (commit messages aside).
    """
    conversation = "\n\n".join(
        render_message(i, message, message_char_limit) for i, message in enumerate(messages, start=1)
    )
    history = "\n\n".join(render_commit(i, commit) for i, commit in enumerate(commits, start=1))

    return (
        "You are analyzing a chat history from a coding session and matching conversations "
        f'to actual code changes in the repository "{repository_label}".\n\n'
        f"# Chat History (Code-Related Messages):\n{conversation}\n\n"
        f"# Recent Git Commits:\n{history}\n\n"
        f"{TASK}"
    )
