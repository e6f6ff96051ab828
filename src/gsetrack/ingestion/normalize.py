"""Normalization helpers.

Centralizes canonicalization of free-text equipment attributes. The table is
pure and read-only at runtime; the bootstrap gate and the shared state store
both run records through it before anything is written.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from gsetrack.models.equipment import EquipmentRecord

_logger = logging.getLogger(__name__)

#: Equipment fields the table may carry rules for.
NORMALIZED_FIELDS: tuple[str, ...] = ("type", "mobility")


def variant_key(value: str) -> str:
    """Comparison key for a free-text variant.

    Case-folded, accents stripped, with ``_``/``-`` and runs of whitespace
    collapsed to single spaces: ``"Self_Propelled "`` and ``"self-propelled"``
    compare equal.
    """
    decomposed = unicodedata.normalize("NFKD", value.casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.replace("_", " ").replace("-", " ").split())


class NormalizationTable(BaseModel):
    """Per-field mapping of canonical values to their accepted variants.

    ``rules["mobility"]["motorized"] = ["Motorlu", "self-propelled"]``
    maps both variants (and ``"motorized"`` itself) to ``"motorized"``.
    Values with no matching rule pass through unchanged apart from
    whitespace trimming.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rules: dict[str, dict[str, list[str]]] = Field(default_factory=dict)

    _index: dict[str, dict[str, str]] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _build_index(self) -> NormalizationTable:
        index: dict[str, dict[str, str]] = {}
        for field_name, canon_map in self.rules.items():
            if field_name not in NORMALIZED_FIELDS:
                raise ValueError(f"no normalization supported for field {field_name!r}")
            lookup: dict[str, str] = {}
            for canonical, variants in canon_map.items():
                for variant in (canonical, *variants):
                    key = variant_key(variant)
                    previous = lookup.get(key)
                    if previous is not None and previous != canonical:
                        raise ValueError(
                            f"variant {variant!r} of {field_name!r} maps to both {previous!r} and {canonical!r}"
                        )
                    lookup[key] = canonical
            index[field_name] = lookup
        self._index = index
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> NormalizationTable:
        if not data:
            return cls()
        if "rules" in data:
            return cls.model_validate(data)
        return cls.model_validate({"rules": dict(data)})

    def canonicalize(self, field_name: str, value: str | None) -> str | None:
        """Return the canonical spelling of *value* for *field_name*."""
        if value is None:
            return None
        text = value.strip()
        lookup = self._index.get(field_name)
        if not lookup or not text:
            return text
        canonical = lookup.get(variant_key(text))
        if canonical is None:
            _logger.debug("No canonical %s for %r; keeping as-is", field_name, text)
            return text
        return canonical

    def apply(self, record: EquipmentRecord) -> EquipmentRecord:
        """Return *record* with every normalized field canonicalized."""
        update: dict[str, Any] = {}
        for field_name in NORMALIZED_FIELDS:
            current = getattr(record, field_name)
            canonical = self.canonicalize(field_name, current)
            if canonical != current:
                update[field_name] = canonical
        if not update:
            return record
        return record.model_copy(update=update)

    def apply_patch(self, changes: dict[str, Any]) -> dict[str, Any]:
        """Canonicalize normalized fields inside a management patch."""
        result = dict(changes)
        for field_name in NORMALIZED_FIELDS:
            if field_name in result and isinstance(result[field_name], str):
                result[field_name] = self.canonicalize(field_name, result[field_name])
        return result
