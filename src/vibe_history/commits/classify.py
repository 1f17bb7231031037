"""Classification of changed files and commits as code or non-code."""

from pathlib import PurePosixPath

from vibe_history.models import Commit

CODE_EXTENSIONS = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
    ".py", ".pyi",
    ".java", ".kt", ".kts", ".scala",
    ".go", ".rs",
    ".c", ".h", ".cc", ".cpp", ".hpp", ".cs",
    ".rb", ".php", ".swift",
    ".sql",
    ".sh", ".vue", ".svelte",
})

# Generated files that carry a code extension but no authored change
GENERATED_NAMES = frozenset({
    "package-lock.json",
    "pnpm-lock.yaml",
    "yarn.lock",
    "poetry.lock",
    "Cargo.lock",
    "go.sum",
})


def is_code_file(path: str) -> bool:
    """Whether a repository path is a source-code file."""
    pure = PurePosixPath(path)
    if pure.name in GENERATED_NAMES or pure.name.endswith((".min.js", ".d.ts")):
        return False
    return pure.suffix.lower() in CODE_EXTENSIONS


def is_code_commit(commit: Commit) -> bool:
    """Whether any file changed by a commit is source code."""
    return any(is_code_file(f.path) for f in commit.files)


def filter_code_commits(commits: list[Commit]) -> list[Commit]:
    """Drop commits that only touch documentation, config or lock files.

    Order is preserved.
    """
    return [commit for commit in commits if is_code_commit(commit)]
