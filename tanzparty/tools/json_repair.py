"""Repair-and-parse for free-form model output that should contain event JSON.

The model is asked for ``null``, one object, or an array of objects. In
practice it also returns fenced blocks, prose around the payload, several
objects glued together without brackets, and truncated tails. Everything that
can be salvaged is returned; everything else is dropped.
"""

from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger

NULL_SENTINEL_RE = re.compile(r"^\s*(?:```(?:json)?\s*)?null\s*(?:```)?\s*$", re.IGNORECASE)
FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
# "}{", "},{", "}\n{", "},\n\n{", "} , {" ...
OBJECT_BOUNDARY_RE = re.compile(r"\}\s*,?\s*\{")


def is_null_sentinel(raw: str) -> bool:
    """True when the whole response is the irrelevance sentinel (bare or fenced)."""
    return bool(NULL_SENTINEL_RE.match(raw or ""))


def _strip_code_fence(text: str) -> str:
    match = FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    if text.startswith("```"):
        # Unterminated fence
        text = text[3:]
        if text[:4].lower() == "json":
            text = text[4:]
    return text.strip()


def _span_starts(text: str) -> list[int]:
    """Candidate span starts: the first ``[`` when it precedes any brace, then the first ``{``."""
    brace = text.find("{")
    bracket = text.find("[")
    starts = []
    if bracket >= 0 and (brace < 0 or bracket < brace):
        starts.append(bracket)
    if brace >= 0:
        starts.append(brace)
    return starts


def _json_span(text: str, start: int) -> str:
    """Slice from ``start`` to the matching kind of closing character."""
    if text[start] == "[":
        end = max(text.rfind("}"), text.rfind("]"))
    else:
        end = text.rfind("}")
    if end <= start:
        # Truncated payload: keep the tail and let fragment repair close it
        return text[start:].strip()
    return text[start : end + 1]


def _as_objects(parsed: Any) -> list[dict[str, Any]]:
    if isinstance(parsed, dict):
        return [parsed]
    if isinstance(parsed, list):
        return [item for item in parsed if isinstance(item, dict)]
    return []


def _wrap_adjacent_objects(span: str) -> str:
    """Turn ``{..}{..}`` / ``{..},{..}`` into a JSON array literal."""
    if not span.startswith("{") or not OBJECT_BOUNDARY_RE.search(span):
        return span
    return "[" + OBJECT_BOUNDARY_RE.sub("},{", span) + "]"


def _parse_fragments(span: str) -> list[dict[str, Any]]:
    body = span.strip()
    if body.startswith("["):
        body = body[1:]
        if body.endswith("]"):
            body = body[:-1]

    objects: list[dict[str, Any]] = []
    fragments = OBJECT_BOUNDARY_RE.split(body)
    for index, fragment in enumerate(fragments):
        piece = fragment.strip().strip(",").strip()
        if not piece:
            continue
        if not piece.startswith("{"):
            piece = "{" + piece
        if not piece.endswith("}"):
            piece = piece + "}"
        try:
            parsed = json.loads(piece)
        except json.JSONDecodeError as exc:
            logger.debug(f"Dropping unparseable fragment {index + 1}/{len(fragments)}: {exc}")
            continue
        objects.extend(_as_objects(parsed))
    return objects


def _parse_span(span: str) -> list[dict[str, Any]]:
    candidate = _wrap_adjacent_objects(span)
    try:
        return _as_objects(json.loads(candidate))
    except json.JSONDecodeError:
        pass

    objects = _parse_fragments(span)
    logger.debug(f"Fragment repair recovered {len(objects)} object(s)")
    return objects


def repair_and_parse(raw: str | None) -> list[dict[str, Any]] | None:
    """Parse model output into a list of JSON objects.

    Returns ``None`` when the response is the ``null`` sentinel, otherwise a
    possibly empty list of dicts.
    """
    if raw is None or is_null_sentinel(raw):
        return None

    text = _strip_code_fence(raw.strip())
    if is_null_sentinel(text):
        return None

    starts = _span_starts(text)
    if not starts:
        logger.debug("Model response contains no JSON-like span")
        return []

    # A "[" inside leading prose parses to nothing; the first "{" is tried next
    objects: list[dict[str, Any]] = []
    for start in starts:
        objects = _parse_span(_json_span(text, start))
        if objects:
            break
    return objects
