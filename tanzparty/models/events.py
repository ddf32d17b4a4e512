from __future__ import annotations

import re
from datetime import date, datetime
from enum import StrEnum
from typing import Any, Optional
from uuid import UUID

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

DANCE_STYLES: tuple[str, ...] = (
    "Salsa",
    "Salsa On 2",
    "Salsa L.A.",
    "Salsa Cubana",
    "Bachata",
    "Bachata Dominicana",
    "Bachata Sensual",
    "Kizomba",
    "Zouk",
    "Forró",
)

_STYLE_LOOKUP = {style.lower(): style for style in DANCE_STYLES}
_STYLE_LOOKUP.update({"forro": "Forró", "salsa la": "Salsa L.A.", "salsa on2": "Salsa On 2"})


class VenueType(StrEnum):
    INDOOR = "Indoor"
    OUTDOOR = "Outdoor"
    UNSPECIFIED = "Unspecified"


class RecurrenceType(StrEnum):
    ONCE = "once"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    IRREGULAR = "irregular"


_VENUE_ALIASES = {
    "indoor": VenueType.INDOOR,
    "drinnen": VenueType.INDOOR,
    "innen": VenueType.INDOOR,
    "outdoor": VenueType.OUTDOOR,
    "draußen": VenueType.OUTDOOR,
    "open air": VenueType.OUTDOOR,
    "open-air": VenueType.OUTDOOR,
}


def normalize_styles(value: Any) -> list[str] | None:
    """Split comma-separated styles and keep only known vocabulary members."""
    if value is None:
        return None
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, (list, tuple)):
        raw = [part for item in value if isinstance(item, str) for part in item.split(",")]
    else:
        return None

    styles: list[str] = []
    for item in raw:
        key = " ".join(item.split()).lower()
        canonical = _STYLE_LOOKUP.get(key)
        if canonical and canonical not in styles:
            styles.append(canonical)
    return styles or None


def _parse_iso_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = re.match(r"\s*(\d{4}-\d{2}-\d{2})", value)
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


class Workshop(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None
    style: Optional[str] = None
    level: Optional[str] = None


class FloorMusic(BaseModel):
    floor: Optional[str] = None
    distribution: Optional[str] = None


class PartySchedule(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None
    floors: list[FloorMusic] = []

    @field_validator("floors", mode="before")
    @classmethod
    def _floors_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
        return []


class EventCandidate(BaseModel):
    """One structured event extracted from a page, pending dedup and storage."""
    name: str
    styles: Optional[list[str]] = None
    dates: list[date] = Field(min_length=1)
    workshops: list[Workshop] = []
    party: Optional[PartySchedule] = None
    address: str
    city: str
    source_url: str
    recurrence: Optional[str] = None
    recurrence_type: Optional[RecurrenceType] = None
    venue_type: VenueType = VenueType.UNSPECIFIED

    @field_validator("name", "address", "city", "source_url", mode="before")
    @classmethod
    def _required_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = " ".join(value.split())
            if not value:
                raise ValueError("must not be empty")
        return value

    @field_validator("styles", mode="before")
    @classmethod
    def _styles(cls, value: Any) -> list[str] | None:
        return normalize_styles(value)

    @field_validator("dates", mode="before")
    @classmethod
    def _dates(cls, value: Any) -> Any:
        if isinstance(value, (str, date)):
            value = [value]
        if not isinstance(value, list):
            return value
        parsed = [d for d in (_parse_iso_date(item) for item in value) if d is not None]
        return list(dict.fromkeys(parsed))

    @field_validator("workshops", mode="before")
    @classmethod
    def _workshops(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
        return []

    @field_validator("party", mode="before")
    @classmethod
    def _party(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @field_validator("recurrence", mode="before")
    @classmethod
    def _recurrence(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return None
        value = " ".join(value.split())
        return value or None

    @field_validator("recurrence_type", mode="before")
    @classmethod
    def _recurrence_type(cls, value: Any) -> RecurrenceType | None:
        if not isinstance(value, str):
            return None
        key = value.strip().lower().replace("-", "").replace(" ", "")
        try:
            return RecurrenceType(key)
        except ValueError:
            return None

    @field_validator("venue_type", mode="before")
    @classmethod
    def _venue_type(cls, value: Any) -> VenueType:
        if not isinstance(value, str):
            return VenueType.UNSPECIFIED
        return _VENUE_ALIASES.get(value.strip().lower(), VenueType.UNSPECIFIED)

    @property
    def first_date(self) -> date:
        return self.dates[0]


class StoredEvent(BaseModel):
    """Persisted, deduplicated event row."""
    model_config = {"populate_by_name": True}

    id: UUID
    name: str
    styles: Optional[list[str]] = None
    event_date: date = Field(alias="date")
    workshops: list[Workshop] = []
    party: Optional[PartySchedule] = None
    address: str
    city: Optional[str] = None
    source_url: str
    recurrence: Optional[str] = None
    recurrence_type: Optional[RecurrenceType] = None
    venue_type: VenueType = VenueType.UNSPECIFIED
    processed_at: datetime


def candidate_from_payload(payload: Any, source_url: str) -> EventCandidate | None:
    """Validate one model-produced dict; return None when it cannot be used."""
    if not isinstance(payload, dict):
        return None
    data = dict(payload)
    data["source_url"] = source_url
    try:
        return EventCandidate.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        logger.debug(f"Dropping extracted event {data.get('name')!r}: invalid {fields}")
        return None
