from __future__ import annotations

import re

# Party / social-dance vocabulary (German and generic).
EVENT_TERMS = (
    "social dance",
    "socials",
    "social",
    "party",
    "partys",
    "parties",
    "open floor",
    "tanzparty",
    "salsaparty",
    "bachataparty",
    "bachata party",
    "kizomba party",
    "zouk party",
    "forró party",
    "forro party",
    "open air",
    "tanzabend",
    "tanznacht",
    "latin night",
    "noche latina",
    "fiesta",
    "ball",
    "aftershow",
    "tanzveranstaltung",
    "salsa veranstaltung",
    "bachata veranstaltung",
    "salsa night",
    "bachata night",
    "kizomba night",
)

# Phrases that mean "classes only, no party". Plain course words are not listed:
# most party pages also advertise a workshop before the party.
COURSE_ONLY_TERMS = (
    "nur kurse",
    "nur kurs",
    "nur unterricht",
    "ausschließlich kurse",
    "ausschliesslich kurse",
    "keine party",
    "keine partys",
    "kein social",
    "kein freies tanzen",
    "classes only",
    "course only",
    "courses only",
    "no party",
    "no social",
)


def _compile(terms: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(term) for term in sorted(terms, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.IGNORECASE)


EVENT_TERMS_RE = _compile(EVENT_TERMS)
COURSE_ONLY_RE = _compile(COURSE_ONLY_TERMS)


def has_event_terms(text: str) -> bool:
    return bool(EVENT_TERMS_RE.search(text))


def is_course_only(text: str) -> bool:
    return bool(COURSE_ONLY_RE.search(text))


def is_relevant_event_text(text: str) -> bool:
    """Whitelist/blacklist heuristic deciding whether a page is worth extracting."""
    if not text:
        return False
    return has_event_terms(text) and not is_course_only(text)
