"""Timestamped topic-mapping artifacts on disk.

Each run writes ``articles_mapped_<epoch_ms>.json``: a JSON list of
TopicArticleMapping records. Readers always take the newest file by the
timestamp in its name; older files are kept until pruned.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from topicfeed.models import ArtifactSchemaError, MappedArticle, TopicArticleMapping, utcnow

logger = logging.getLogger(__name__)

ARTIFACT_PREFIX = "articles_mapped_"
_ARTIFACT_RE = re.compile(rf"^{ARTIFACT_PREFIX}(\d+)\.json$")


def artifact_name(created_at: datetime) -> str:
    return f"{ARTIFACT_PREFIX}{int(created_at.timestamp() * 1000)}.json"


def write_artifact(
    mappings: list[TopicArticleMapping],
    output_dir: str | Path,
    created_at: datetime | None = None,
) -> Path:
    """Serialize mappings atomically and return the new file's path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / artifact_name(created_at or utcnow())

    payload = json.dumps([m.to_dict() for m in mappings], indent=2, ensure_ascii=False)
    fd, tmp_name = tempfile.mkstemp(dir=output_dir, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Saved %d topic mappings to %s", len(mappings), path)
    return path


def list_artifacts(output_dir: str | Path) -> list[Path]:
    """Artifact files in ``output_dir``, newest first."""
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return []
    stamped = []
    for path in output_dir.iterdir():
        match = _ARTIFACT_RE.match(path.name)
        if match and path.is_file():
            stamped.append((int(match.group(1)), path))
    stamped.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in stamped]


def latest_artifact_path(output_dir: str | Path) -> Path | None:
    artifacts = list_artifacts(output_dir)
    return artifacts[0] if artifacts else None


def load_mappings(path: str | Path) -> list[TopicArticleMapping]:
    """Read and validate one artifact file.

    Raises ArtifactSchemaError when the file is not valid JSON or a record
    does not match the mapping schema.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ArtifactSchemaError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ArtifactSchemaError(f"{path} must contain a JSON list")
    return [TopicArticleMapping.from_dict(record) for record in data]


def load_latest_mappings(output_dir: str | Path) -> list[TopicArticleMapping] | None:
    """Mappings from the newest artifact, or None when there is none yet."""
    path = latest_artifact_path(output_dir)
    if path is None:
        return None
    return load_mappings(path)


def articles_for_topics(
    mappings: list[TopicArticleMapping],
    module_id: int | None = None,
    topic_ids: Iterable[int] | None = None,
) -> list[TopicArticleMapping]:
    """Mappings matching a module and/or a set of topic ids."""
    wanted = set(topic_ids) if topic_ids is not None else None
    return [
        m for m in mappings
        if (module_id is None or m.module_id == module_id)
        and (wanted is None or m.topic_id in wanted)
    ]


def top_articles(mappings: list[TopicArticleMapping], limit: int = 3) -> list[MappedArticle]:
    """Highest-confidence articles across mappings, one entry per URL."""
    best: dict[str, MappedArticle] = {}
    for mapping in mappings:
        for article in mapping.articles:
            current = best.get(article.url)
            if current is None or article.confidence > current.confidence:
                best[article.url] = article
    ranked = sorted(best.values(), key=lambda a: a.confidence, reverse=True)
    return ranked[:limit]


def prune_artifacts(output_dir: str | Path, keep: int = 3) -> list[Path]:
    """Delete all but the ``keep`` newest artifacts. Returns deleted paths."""
    deleted = []
    for path in list_artifacts(output_dir)[max(keep, 0):]:
        try:
            path.unlink()
            deleted.append(path)
            logger.info("Deleted old artifact: %s", path.name)
        except OSError as exc:
            logger.warning("Could not delete old artifact %s: %s", path, exc)
    return deleted
