"""Base model and enum for gsetrack records.

Every record model inherits from :class:`GseBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase keys from the reference
  dataset map automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips whitespace and drops
  placeholder values (``""``, ``"--"``) so the field default is used.
* ``frozen=True``: a mutation always produces a new record.

Status enums inherit from :class:`GseEnum` which accepts loosely written
variants (``"In Use"``, ``"in_use"``) for the canonical hyphenated value.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings that mean "not filled in".
_SENTINELS = frozenset({"", "--", "-"})

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce an ISO string, epoch seconds, or epoch milliseconds to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.astimezone(UTC) if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        return parsed.astimezone(UTC) if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    raise ValueError(f"unsupported timestamp value: {value!r}")


GseTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces ISO strings and epoch numbers to UTC datetimes."""

OptionalGseTimestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]


def _enum_key(value: str) -> str:
    return "-".join(value.strip().lower().replace("_", " ").replace("-", " ").split())


class GseEnum(enum.StrEnum):
    """Base for record status enums with lenient lookup."""

    @classmethod
    def _missing_(cls, value: object) -> GseEnum | None:
        if not isinstance(value, str):
            return None
        key = _enum_key(value)
        for member in cls:
            if member.value == key or member.name.lower().replace("_", "-") == key:
                return member
        return None


class GseBaseModel(BaseModel):
    """Base for persisted gsetrack records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if value in _SENTINELS:
                    continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholders(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return GseBaseModel._clean_dict(values)

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible dict in the persisted (camelCase) form."""
        return self.model_dump(mode="json", by_alias=True)
