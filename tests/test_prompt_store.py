from __future__ import annotations

import pytest

from tanzparty.services.prompt_store import clear_prompt_cache, render_prompt

VALUES = {
    "today_iso": "2025-06-01",
    "today_weekday": "Sonntag",
    "source_url": "https://a.de/x",
    "styles": "Salsa, Bachata",
    "occurrences": 4,
    "recurrence_types": '"once", "weekly"',
    "page_text": "Salsa Party",
}


def test_render_prompt_joins_lines_and_substitutes_values():
    clear_prompt_cache()
    prompt = render_prompt("extractor.event_prompt", **VALUES)

    assert "Today is 2025-06-01 (Sonntag)." in prompt
    assert "answer with exactly: null" in prompt
    assert "only from this list: Salsa, Bachata." in prompt
    assert "$" not in prompt
    assert "\n" in prompt


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_reports_missing_value():
    values = dict(VALUES)
    del values["page_text"]
    with pytest.raises(KeyError, match="page_text"):
        render_prompt("extractor.event_prompt", **values)
