from __future__ import annotations

from datetime import date

GERMAN_WEEKDAYS = (
    "Montag",
    "Dienstag",
    "Mittwoch",
    "Donnerstag",
    "Freitag",
    "Samstag",
    "Sonntag",
)

DEFAULT_STYLE = "Salsa"


def build_search_query(
    city: str,
    day: date,
    style: str | None = None,
    *,
    domain_suffix: str = ".de",
) -> str:
    """Build the search string for one city/day, e.g. ``Salsa Veranstaltung Dienstag Berlin site:.de``."""
    weekday = GERMAN_WEEKDAYS[day.weekday()]
    style = " ".join((style or "").split()) or DEFAULT_STYLE
    city = " ".join(city.split())
    query = f"{style} Veranstaltung {weekday} {city}"
    if domain_suffix:
        query += f" site:{domain_suffix}"
    return query
