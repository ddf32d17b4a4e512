"""JSON prompt catalog rendered with ``string.Template``."""

from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"

# path -> (mtime_ns, catalog)
_cache: dict[Path, tuple[int, dict[str, Any]]] = {}


def load_catalog(path: Path = PROMPTS_PATH) -> dict[str, Any]:
    """Read the catalog, re-reading only when the file changed on disk."""
    mtime_ns = path.stat().st_mtime_ns
    cached = _cache.get(path)
    if cached and cached[0] == mtime_ns:
        return cached[1]

    catalog = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(catalog, dict):
        raise ValueError(f"Prompt catalog must be a JSON object: {path}")
    _cache[path] = (mtime_ns, catalog)
    return catalog


def prompt_text(key: str, *, path: Path = PROMPTS_PATH) -> str:
    """Resolve a dotted key such as ``extractor.event_prompt`` to raw template text."""
    node: Any = load_catalog(path)
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(f"Prompt key not found: {key}")
        node = node[part]

    if isinstance(node, str):
        return node
    # Long prompts are stored one line per list item
    if isinstance(node, list) and all(isinstance(line, str) for line in node):
        return "\n".join(node)
    raise TypeError(f"Prompt key must map to a string or list of lines: {key}")


def render_prompt(key: str, **values: Any) -> str:
    template = Template(prompt_text(key))
    missing = sorted(set(template.get_identifiers()) - set(values))
    if missing:
        raise KeyError(f"Missing template values {missing} for prompt '{key}'")
    return template.substitute(values)


def clear_prompt_cache() -> None:
    _cache.clear()
