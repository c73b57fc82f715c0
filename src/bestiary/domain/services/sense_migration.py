"""Upgrade legacy free-text creature senses into the structured sense record.

Older creature data stored senses as user-entered prose at ``traits.senses``,
usually shaped like ``"Darkvision 60 ft, Blindsight 30 ft"``. The structured
record lives at ``attributes.senses`` and holds one range per recognized sense
type plus a ``special`` free-text field.

Parsing is lenient: every comma-separated segment that names a recognized sense
followed by a number is kept, anything else is skipped, and only when nothing at
all could be classified is the whole legacy string copied into ``special``.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Iterable, MutableMapping

logger = logging.getLogger(__name__)

LEGACY_SENSE_PATTERN = re.compile(r"([A-Za-z]+)\s*([0-9]+(?:\.[0-9]+)?)\s*([A-Za-z]+)?")

SENSE_RANGE_STEP = 0.5


@dataclass(frozen=True)
class SenseParseResult:
    values: dict[str, int | float] = field(default_factory=dict)
    matched: bool = False


def round_to_nearest(value: float, step: float = SENSE_RANGE_STEP) -> int | float:
    """Round ``value`` to the nearest multiple of ``step``, halves rounding up."""

    rounded = math.floor(float(value) / step + 0.5) * step
    if float(rounded).is_integer():
        return int(rounded)
    return rounded


def _fold_segment(state: SenseParseResult, segment: str, sense_keys: frozenset[str]) -> SenseParseResult:
    match = LEGACY_SENSE_PATTERN.search(segment.strip())
    if match is None:
        return state
    sense_type = match.group(1).lower()
    if sense_type not in sense_keys:
        return state
    distance = float(match.group(2))
    if not math.isfinite(distance):
        return state
    values = dict(state.values)
    values[sense_type] = round_to_nearest(distance)
    return SenseParseResult(values=values, matched=True)


def parse_legacy_senses(text: str, recognized_sense_keys: Iterable[str]) -> SenseParseResult:
    sense_keys = frozenset(str(key).lower() for key in recognized_sense_keys)
    return reduce(
        lambda state, segment: _fold_segment(state, segment, sense_keys),
        text.split(","),
        SenseParseResult(),
    )


def ensure_sense_record(source: MutableMapping[str, Any]) -> MutableMapping[str, Any] | None:
    """Return ``attributes.senses``, creating empty mappings where they are missing.

    Returns ``None`` when something other than a mapping already occupies either
    location; that value is left alone.
    """

    attributes = source.get("attributes")
    if attributes is None:
        attributes = {}
        source["attributes"] = attributes
    if not isinstance(attributes, MutableMapping):
        return None
    senses = attributes.get("senses")
    if senses is None:
        senses = {}
        attributes["senses"] = senses
    if not isinstance(senses, MutableMapping):
        return None
    return senses


def legacy_senses_text(source: MutableMapping[str, Any]) -> str | None:
    traits = source.get("traits")
    if not isinstance(traits, MutableMapping):
        return None
    original = traits.get("senses")
    return original if isinstance(original, str) else None


def migrate_senses_data(source: MutableMapping[str, Any], recognized_sense_keys: Iterable[str]) -> None:
    """Migrate ``traits.senses`` into ``attributes.senses`` in place.

    Never raises for malformed text. A missing or non-string legacy value leaves
    ``source`` untouched.
    """

    original = legacy_senses_text(source)
    if original is None:
        return

    senses = ensure_sense_record(source)
    if senses is None:
        logger.warning("Structured senses location is not a mapping; legacy senses left unmigrated")
        return
    result = parse_legacy_senses(original, recognized_sense_keys)
    senses.update(result.values)

    if not result.matched and original:
        logger.debug("Legacy senses kept as special text", extra={"legacy_senses": original})
        senses["special"] = original
