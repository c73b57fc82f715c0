from __future__ import annotations

SENSE_TYPES: tuple[str, ...] = ("darkvision", "blindsight", "tremorsense", "truesight")

DEFAULT_SENSE_UNITS = "ft"

DISTANCE_UNITS: dict[str, str] = {
    "ft": "Feet",
    "mi": "Miles",
    "m": "Meters",
    "km": "Kilometers",
}

ABILITIES: dict[str, str] = {
    "str": "Strength",
    "dex": "Dexterity",
    "con": "Constitution",
    "int": "Intelligence",
    "wis": "Wisdom",
    "cha": "Charisma",
}

DEFAULT_SPELLCASTING_ABILITY = "int"

SPELL_LEVELS: dict[int, str] = {
    0: "Cantrip",
    1: "1st Level",
    2: "2nd Level",
    3: "3rd Level",
    4: "4th Level",
    5: "5th Level",
    6: "6th Level",
    7: "7th Level",
    8: "8th Level",
    9: "9th Level",
}

PACT_SLOT_KEY = "pact"


def sense_type_keys() -> frozenset[str]:
    return frozenset(SENSE_TYPES)


def spell_slot_keys() -> list[str]:
    """Slot keys for every spell level except cantrips, followed by the pact slot."""

    levels = [f"spell{level}" for level in sorted(SPELL_LEVELS) if level != 0]
    return [*levels, PACT_SLOT_KEY]


def normalize_ability(value: str | None, *, allow_blank: bool = False) -> str | None:
    slug = str(value or "").strip().lower()[:3]
    if slug in ABILITIES:
        return slug
    if allow_blank and not str(value or "").strip():
        return ""
    return None
