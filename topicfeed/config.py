"""Load and validate configuration from YAML with env var substitution."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_FEEDS = [
    "https://www.reuters.com/technology/rss",
    "https://feeds.bbci.co.uk/news/technology/rss.xml",
    "https://www.theregister.com/headlines.atom",
]

DEFAULT_INCLUDE_KEYWORDS = [
    "cybersecurity", "ai", "artificial intelligence", "machine learning",
    "cloud", "data breach", "vulnerability", "hack", "malware", "api",
    "devops", "security", "tech", "technology", "software", "hardware",
    "network", "database", "encryption", "authentication", "blockchain",
    "quantum", "5g", "internet of things", "iot", "robotics", "automation",
]

DEFAULT_EXCLUDE_KEYWORDS = [
    "opinion", "lifestyle", "sports", "entertainment", "celebrity",
    "gossip", "weather",
]


@dataclass
class PipelineSettings:
    """Tunable knobs for one pipeline instance."""

    retention_days: int = 7
    timeout_seconds: float = 15.0
    max_article_length: int = 15000
    include_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_KEYWORDS))
    exclude_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_KEYWORDS))
    acceptance_threshold: float = 0.5
    top_n: int = 5
    max_articles_per_topic: int = 3
    classify_interval_seconds: float = 0.5
    scrape_interval_seconds: float = 0.0
    default_feeds: list[str] = field(default_factory=lambda: list(DEFAULT_FEEDS))
    output_dir: str = "./temp"
    keep_artifacts: int = 3
    stale_run_minutes: int = 120


def _load_dotenv(path: str | Path = ".env") -> None:
    """Load a .env file into os.environ (without overwriting existing vars)."""
    env_path = Path(path)
    if not env_path.is_file():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("'\"")
            if key and key not in os.environ:
                os.environ[key] = value


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} patterns in config values."""
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")
        match = pattern.search(value)
        if match:
            env_key = match.group(1)
            env_val = os.environ.get(env_key, "")
            # If the entire string is a single env var, return the resolved value
            if match.group(0) == value:
                return env_val
            return pattern.sub(lambda m: os.environ.get(m.group(1), ""), value)
        return value
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(path: str | Path = "config.yaml") -> dict[str, Any]:
    """Load config from YAML file and resolve environment variables."""
    _load_dotenv()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return _resolve_env_vars(raw)


def _env_number(name: str, default: float, cast=int):
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be numeric, got {raw!r}") from None


def get_pipeline_settings(config: dict) -> PipelineSettings:
    """Build PipelineSettings from the config dict.

    YAML values win; the legacy RSS_SINCE_DAYS, RSS_TIMEOUT (milliseconds) and
    ARTICLE_OUTPUT_DIR environment variables fill in when the YAML is silent.
    """
    pipeline_cfg = config.get("pipeline", {}) or {}
    keywords_cfg = config.get("keywords", {}) or {}
    feeds_cfg = config.get("feeds", {}) or {}

    retention_days = pipeline_cfg.get("retention_days")
    if retention_days is None:
        retention_days = _env_number("RSS_SINCE_DAYS", 7)

    timeout_seconds = pipeline_cfg.get("timeout_seconds")
    if timeout_seconds is None:
        timeout_seconds = _env_number("RSS_TIMEOUT", 15000) / 1000

    include = keywords_cfg.get("include")
    exclude = keywords_cfg.get("exclude")
    default_feeds = feeds_cfg.get("default")

    settings = PipelineSettings(
        retention_days=int(retention_days),
        timeout_seconds=float(timeout_seconds),
        max_article_length=int(pipeline_cfg.get("max_article_length", 15000)),
        include_keywords=list(include) if include is not None else list(DEFAULT_INCLUDE_KEYWORDS),
        exclude_keywords=list(exclude) if exclude is not None else list(DEFAULT_EXCLUDE_KEYWORDS),
        acceptance_threshold=float(pipeline_cfg.get("acceptance_threshold", 0.5)),
        top_n=int(pipeline_cfg.get("top_n", 5)),
        max_articles_per_topic=int(pipeline_cfg.get("max_articles_per_topic", 3)),
        classify_interval_seconds=float(pipeline_cfg.get("classify_interval_seconds", 0.5)),
        scrape_interval_seconds=float(pipeline_cfg.get("scrape_interval_seconds", 0.0)),
        default_feeds=list(default_feeds) if default_feeds is not None else list(DEFAULT_FEEDS),
        output_dir=get_artifact_dir(config),
        keep_artifacts=int(config.get("artifacts", {}).get("keep", 3)),
        stale_run_minutes=int(pipeline_cfg.get("stale_run_minutes", 120)),
    )
    _validate_settings(settings)
    return settings


def _validate_settings(settings: PipelineSettings) -> None:
    if settings.retention_days <= 0:
        raise ValueError("pipeline.retention_days must be positive")
    if settings.timeout_seconds <= 0:
        raise ValueError("pipeline.timeout_seconds must be positive")
    if not 0.0 <= settings.acceptance_threshold <= 1.0:
        raise ValueError("pipeline.acceptance_threshold must be within [0, 1]")
    if settings.top_n < 1 or settings.max_articles_per_topic < 1:
        raise ValueError("pipeline.top_n and max_articles_per_topic must be >= 1")


def get_llm_task_config(config: dict, task: str) -> dict:
    """Get provider name and model for a given LLM task."""
    tasks = config.get("llm", {}).get("tasks", {})
    task_cfg = tasks.get(task, {})
    provider_name = task_cfg.get("provider", "deepseek")
    model_override = task_cfg.get("model")

    providers = config.get("llm", {}).get("providers", {})
    provider_cfg = providers.get(provider_name, {})

    return {
        "provider_name": provider_name,
        "provider_type": provider_cfg.get("type", "openai_compatible"),
        "api_key": provider_cfg.get("api_key", ""),
        "base_url": provider_cfg.get("base_url", ""),
        "model": model_override or provider_cfg.get("default_model", ""),
        "max_retries": provider_cfg.get("max_retries", 3),
        "timeout": provider_cfg.get("timeout", 120),
        "json_mode": bool(provider_cfg.get("json_mode", False)),
    }


def get_store_config(config: dict) -> dict:
    """Return the feed/topic store section with its type resolved."""
    store_cfg = dict(config.get("store", {}) or {})
    store_cfg.setdefault("type", "sqlite")
    return store_cfg


def get_db_path(config: dict) -> str:
    """Get database path from config."""
    return config.get("database", {}).get("path", "data/topicfeed.db")


def get_artifact_dir(config: dict) -> str:
    """Directory that receives articles_mapped_*.json files."""
    configured = config.get("artifacts", {}).get("output_dir")
    if configured:
        return configured
    return os.environ.get("ARTICLE_OUTPUT_DIR") or "./temp"
