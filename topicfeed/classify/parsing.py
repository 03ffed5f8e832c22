"""Extract a JSON list of topic suggestions from free-form LLM output."""

from __future__ import annotations

import json
import re


def _normalize_quotes(text: str) -> str:
    """Replace smart/curly quotes with straight quotes for JSON parsing."""
    return (
        text
        .replace("\u201c", '"')   # left double quote
        .replace("\u201d", '"')   # right double quote
        .replace("\u2018", "'")   # left single quote
        .replace("\u2019", "'")   # right single quote
    )


def _try_parse(text: str):
    for candidate in (text, _normalize_quotes(text)):
        try:
            return json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
    return None


def _as_items(data) -> list[dict] | None:
    if isinstance(data, dict):
        # json_mode providers must wrap the array in an object
        for key in ("topics", "results", "items"):
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            return None
    if not isinstance(data, list):
        return None
    return [item for item in data if isinstance(item, dict)]


def extract_json_list(text: str) -> list[dict] | None:
    """Parse LLM output into a list of dicts, or None if nothing usable.

    Tries the raw text, then a fenced code block, then the first ``[...]``
    block, then the first ``{...}`` block.
    """
    if not text or not text.strip():
        return None

    candidates = [text.strip()]
    fenced = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if fenced:
        candidates.append(fenced.group(1))
    bracket = re.search(r"\[.*\]", text, re.DOTALL)
    if bracket:
        candidates.append(bracket.group(0))
    brace = re.search(r"\{.*\}", text, re.DOTALL)
    if brace:
        candidates.append(brace.group(0))

    for candidate in candidates:
        items = _as_items(_try_parse(candidate))
        if items is not None:
            return items
    return None
