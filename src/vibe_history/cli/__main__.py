"""CLI entry point for vibe-history.

Allows running correlations from the command line:
    python -m vibe_history.cli analyze owner/repo chat-export.md
"""

import json
import sys
from pathlib import Path

import click

from vibe_history.config import load_config
from vibe_history.errors import VibeHistoryError
from vibe_history.logging import setup_logging
from vibe_history.models import AnalysisRequest, AnalysisResponse, Repository, RunContext
from vibe_history.pipeline import VibeHistoryPipeline, build_pipeline


def parse_repository(ctx: click.Context, param: click.Parameter, value: str | None) -> Repository | None:
    if value is None:
        return None
    try:
        return Repository.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def print_response(response: AnalysisResponse, as_json: bool) -> None:
    """Print an analysis response."""
    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2))
        return

    source = "cache" if response.from_cache else "fresh analysis"
    click.echo(f"\033[36m[{response.analyzed_at}]\033[0m {source}")
    click.echo(f"Messages: {response.total_messages} | Code commits: {response.total_commits} | Links: {len(response.links)}")
    click.echo("-" * 40)

    for link in response.links:
        click.echo(f"\033[1m{link.id}\033[0m confidence \033[32m{link.confidence}\033[0m")
        click.echo(f"\n{link.chat_excerpt}\n")
        for change in link.code_changes:
            sha = f" ({change.commit_sha[:7]})" if change.commit_sha else ""
            click.echo(f"  - {change.file}{sha}: {change.description}")
        click.echo(f"\nWhy: {link.reasoning}")
        click.echo("-" * 40)


def fail(error: VibeHistoryError) -> None:
    click.echo(f"Error: {error.message}", err=True)
    if error.hint:
        click.echo(f"Hint: {error.hint}", err=True)
    sys.exit(1)


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to config.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Link chat history to the commits it produced."""
    config = load_config(config_path)
    try:
        setup_logging("cli", log_dir=config.log_dir, level="DEBUG" if verbose else config.log_level, console=False)
    except ValueError as e:
        raise click.UsageError(f"{e} (check log_level in config)") from e
    ctx.obj = config


def _pipeline(ctx: click.Context, local_repo: Path | None = None) -> VibeHistoryPipeline:
    commit_source = None
    if local_repo is not None:
        from vibe_history.commits.local import LocalGitCommitSource

        commit_source = LocalGitCommitSource(local_repo)
    return build_pipeline(ctx.obj, commit_source=commit_source)


@cli.command()
@click.argument("repository", callback=parse_repository)
@click.argument("chat_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--installation", default="", help="GitHub App installation id")
@click.option("--account", envvar="VIBE_HISTORY_ACCOUNT", default="local", help="Account the result is stored under")
@click.option("--force", is_flag=True, help="Re-run even if a cached result exists")
@click.option("--local-repo", type=click.Path(exists=True, file_okay=False, path_type=Path), help="Read commits from a local clone")
@click.option("--json", "as_json", is_flag=True, help="Print the response as JSON")
@click.pass_context
def analyze(
    ctx: click.Context,
    repository: Repository,
    chat_file: Path,
    installation: str,
    account: str,
    force: bool,
    local_repo: Path | None,
    as_json: bool,
) -> None:
    """Correlate a chat export with REPOSITORY's recent commits."""
    if not ctx.obj.oracle.api_key:
        click.echo("Warning: ANTHROPIC_API_KEY is not set; no links will be produced.", err=True)

    request = AnalysisRequest(
        repository=repository,
        installation_ref=installation,
        chat_file_bytes=chat_file.read_bytes(),
        chat_file_name=chat_file.name,
        force_reanalyze=force,
    )
    try:
        response = _pipeline(ctx, local_repo).run(RunContext(account_id=account), request)
    except VibeHistoryError as e:
        fail(e)
        return

    print_response(response, as_json)


@cli.command()
@click.argument("repository", callback=parse_repository)
@click.option("--account", envvar="VIBE_HISTORY_ACCOUNT", default="local", help="Account the result is stored under")
@click.option("--json", "as_json", is_flag=True, help="Print the response as JSON")
@click.pass_context
def show(ctx: click.Context, repository: Repository, account: str, as_json: bool) -> None:
    """Show the cached result for REPOSITORY."""
    response = _pipeline(ctx).cached(RunContext(account_id=account), repository)
    if response is None:
        click.echo(f"No cached analysis for {repository}.", err=True)
        sys.exit(1)
    print_response(response, as_json)


@cli.command()
@click.argument("repository", required=False, callback=parse_repository)
@click.option("--account", envvar="VIBE_HISTORY_ACCOUNT", default="local", help="Account the results are stored under")
@click.pass_context
def clear(ctx: click.Context, repository: Repository | None, account: str) -> None:
    """Delete cached results for REPOSITORY, or for the whole account."""
    removed = _pipeline(ctx).clear(RunContext(account_id=account), repository)
    click.echo(f"Removed {removed} cached result(s).")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
