"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class CorrelationConfig:
    lookback_days: int = 90
    commit_limit: int = 100
    message_char_limit: int = 500
    run_timeout_seconds: int = 300
    single_flight: bool = False


@dataclass
class GitHubConfig:
    api_url: str = "https://api.github.com"
    token: str = ""
    timeout_seconds: float = 30.0
    max_workers: int = 8


@dataclass
class OracleConfig:
    api_url: str = "https://api.anthropic.com"
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4000
    timeout_seconds: float = 240.0


@dataclass
class CacheConfig:
    backend: str = "sqlite"  # sqlite, typesense
    db_path: Path = field(default_factory=lambda: Path.home() / "vibe-history" / "state" / "results.db")


@dataclass
class TypesenseConfig:
    host: str = "localhost"
    port: int = 8108
    protocol: str = "http"
    api_key: str = "dev-api-key"
    collection: str = "vibe_history"


@dataclass
class Config:
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    typesense: TypesenseConfig = field(default_factory=TypesenseConfig)
    log_dir: Path = field(default_factory=lambda: Path.home() / "vibe-history" / "logs")
    log_level: str = "INFO"


def expand_env_var(value: str) -> str:
    """Expand environment variables in string (e.g. ${VAR})."""
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, "")
    return value


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "vibe-history" / "config.yaml",
            Path("/etc/vibe-history/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        config = Config()
        config.github.token = os.environ.get("GITHUB_TOKEN", "")
        config.oracle.api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        return config

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    corr_data = data.get("correlation", {})
    correlation = CorrelationConfig(
        lookback_days=int(corr_data.get("lookback_days", 90)),
        commit_limit=int(corr_data.get("commit_limit", 100)),
        message_char_limit=int(corr_data.get("message_char_limit", 500)),
        run_timeout_seconds=int(corr_data.get("run_timeout_seconds", 300)),
        single_flight=bool(corr_data.get("single_flight", False)),
    )

    gh_data = data.get("github", {})
    github = GitHubConfig(
        api_url=gh_data.get("api_url", "https://api.github.com"),
        token=expand_env_var(gh_data.get("token", "${GITHUB_TOKEN}")),
        timeout_seconds=float(gh_data.get("timeout_seconds", 30.0)),
        max_workers=int(gh_data.get("max_workers", 8)),
    )

    oracle_data = data.get("oracle", {})
    oracle = OracleConfig(
        api_url=oracle_data.get("api_url", "https://api.anthropic.com"),
        api_key=expand_env_var(oracle_data.get("api_key", "${ANTHROPIC_API_KEY}")),
        model=oracle_data.get("model", "claude-sonnet-4-5-20250929"),
        max_tokens=int(oracle_data.get("max_tokens", 4000)),
        timeout_seconds=float(oracle_data.get("timeout_seconds", 240.0)),
    )

    cache_data = data.get("cache", {})
    cache = CacheConfig(
        backend=cache_data.get("backend", "sqlite"),
        db_path=expand_path(cache_data.get("db_path", "~/vibe-history/state/results.db")),
    )

    # Parse typesense config
    ts_data = data.get("typesense", {})
    typesense = TypesenseConfig(
        host=ts_data.get("host", "localhost"),
        port=ts_data.get("port", 8108),
        protocol=ts_data.get("protocol", "http"),
        api_key=expand_env_var(ts_data.get("api_key", "dev-api-key")),
        collection=ts_data.get("collection", "vibe_history"),
    )

    return Config(
        correlation=correlation,
        github=github,
        oracle=oracle,
        cache=cache,
        typesense=typesense,
        log_dir=expand_path(data.get("log_dir", "~/vibe-history/logs")),
        log_level=str(data.get("log_level", "INFO")),
    )
