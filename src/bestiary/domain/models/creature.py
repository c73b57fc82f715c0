from __future__ import annotations

import copy
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping, MutableMapping, Optional

from bestiary.domain.models.skill_proficiency import SKILL_CATALOG, default_ability_for_skill
from bestiary.domain.rules_config import (
    DEFAULT_SENSE_UNITS,
    DEFAULT_SPELLCASTING_ABILITY,
    DISTANCE_UNITS,
    SENSE_TYPES,
    normalize_ability,
    sense_type_keys,
    spell_slot_keys,
)
from bestiary.domain.services.sense_migration import legacy_senses_text, migrate_senses_data


DEFAULT_ATTUNEMENT_MAX = 3

SENSES_MIGRATED_FLAG = "legacy_senses_migrated"


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _non_negative_int(value: Any, default: int = 0) -> int:
    try:
        number = int(value)
    except Exception:
        return default
    return number if number >= 0 else default


def _optional_non_negative_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except Exception:
        return None
    return number if number >= 0 else None


def _non_negative_range(value: Any, default: int | float = 0) -> int | float:
    try:
        number = float(value)
    except Exception:
        return default
    if number < 0 or not math.isfinite(number):
        return default
    return int(number) if number.is_integer() else number


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def _has_sense_record(source: Mapping[str, Any]) -> bool:
    attributes = source.get("attributes")
    return isinstance(attributes, Mapping) and isinstance(attributes.get("senses"), Mapping)


def _sense_units(value: Any) -> str:
    units = _text(value).lower()
    return units if units in DISTANCE_UNITS else DEFAULT_SENSE_UNITS


@dataclass
class Senses:
    darkvision: int | float = 0
    blindsight: int | float = 0
    tremorsense: int | float = 0
    truesight: int | float = 0
    units: str = DEFAULT_SENSE_UNITS
    special: str = ""

    @classmethod
    def from_mapping(cls, raw: Any) -> "Senses":
        data = _mapping(raw)
        ranges = {key: _non_negative_range(data.get(key)) for key in SENSE_TYPES}
        return cls(
            **ranges,
            units=_sense_units(data.get("units")),
            special=str(data.get("special") or ""),
        )


@dataclass
class Attunement:
    max: int = DEFAULT_ATTUNEMENT_MAX


@dataclass
class CreatureAttributes:
    attunement: Attunement = field(default_factory=Attunement)
    senses: Senses = field(default_factory=Senses)
    spellcasting: str = DEFAULT_SPELLCASTING_ABILITY

    @classmethod
    def from_mapping(cls, raw: Any) -> "CreatureAttributes":
        data = _mapping(raw)
        attunement = _mapping(data.get("attunement"))
        spellcasting = data.get("spellcasting", DEFAULT_SPELLCASTING_ABILITY)
        ability = normalize_ability(spellcasting, allow_blank=True)
        return cls(
            attunement=Attunement(max=_non_negative_int(attunement.get("max"), DEFAULT_ATTUNEMENT_MAX)),
            senses=Senses.from_mapping(data.get("senses")),
            spellcasting=DEFAULT_SPELLCASTING_ABILITY if ability is None else ability,
        )


@dataclass
class AttackBonuses:
    attack: str = ""
    damage: str = ""

    @classmethod
    def from_mapping(cls, raw: Any) -> "AttackBonuses":
        data = _mapping(raw)
        return cls(attack=_text(data.get("attack")), damage=_text(data.get("damage")))


@dataclass
class AbilityBonuses:
    check: str = ""
    save: str = ""
    skill: str = ""


@dataclass
class CreatureBonuses:
    mwak: AttackBonuses = field(default_factory=AttackBonuses)
    rwak: AttackBonuses = field(default_factory=AttackBonuses)
    msak: AttackBonuses = field(default_factory=AttackBonuses)
    rsak: AttackBonuses = field(default_factory=AttackBonuses)
    abilities: AbilityBonuses = field(default_factory=AbilityBonuses)
    spell_dc: str = ""

    @classmethod
    def from_mapping(cls, raw: Any) -> "CreatureBonuses":
        data = _mapping(raw)
        abilities = _mapping(data.get("abilities"))
        spell = _mapping(data.get("spell"))
        return cls(
            mwak=AttackBonuses.from_mapping(data.get("mwak")),
            rwak=AttackBonuses.from_mapping(data.get("rwak")),
            msak=AttackBonuses.from_mapping(data.get("msak")),
            rsak=AttackBonuses.from_mapping(data.get("rsak")),
            abilities=AbilityBonuses(
                check=_text(abilities.get("check")),
                save=_text(abilities.get("save")),
                skill=_text(abilities.get("skill")),
            ),
            spell_dc=_text(spell.get("dc")),
        )


@dataclass
class CreatureDetails:
    alignment: str = ""
    race: str = ""


@dataclass
class SkillData:
    value: float = 0
    ability: str = "dex"
    bonuses: dict[str, str] = field(default_factory=lambda: {"check": "", "passive": ""})

    @classmethod
    def initial(cls, slug: str) -> "SkillData":
        return cls(ability=default_ability_for_skill(slug) or "dex")

    @classmethod
    def from_mapping(cls, slug: str, raw: Any) -> "SkillData":
        skill = cls.initial(slug)
        data = _mapping(raw)
        try:
            skill.value = float(data.get("value", 0) or 0)
        except Exception:
            skill.value = 0.0
        if skill.value.is_integer():
            skill.value = int(skill.value)
        skill.ability = normalize_ability(data.get("ability")) or skill.ability
        bonuses = _mapping(data.get("bonuses"))
        skill.bonuses = {
            "check": _text(bonuses.get("check")),
            "passive": _text(bonuses.get("passive")),
        }
        return skill


@dataclass
class SpellSlotData:
    value: int = 0
    override: Optional[int] = None

    @classmethod
    def from_mapping(cls, raw: Any) -> "SpellSlotData":
        data = _mapping(raw)
        return cls(
            value=_non_negative_int(data.get("value")),
            override=_optional_non_negative_int(data.get("override")),
        )


@dataclass
class SimpleTrait:
    value: list[str] = field(default_factory=list)
    custom: str = ""

    @classmethod
    def from_mapping(cls, raw: Any) -> "SimpleTrait":
        data = _mapping(raw)
        values = data.get("value")
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, (list, tuple, set)):
            values = []
        cleaned = [_text(item).lower() for item in values if _text(item)]
        return cls(value=sorted(set(cleaned)), custom=_text(data.get("custom")))


def _initial_skills(initial_keys: Iterable[str]) -> dict[str, SkillData]:
    return {slug: SkillData.initial(slug) for slug in initial_keys}


def _initial_spell_slots() -> dict[str, SpellSlotData]:
    return {key: SpellSlotData() for key in spell_slot_keys()}


@dataclass
class CreatureTemplate:
    """Typed view over the data shared by every creature-type actor."""

    attributes: CreatureAttributes = field(default_factory=CreatureAttributes)
    bonuses: CreatureBonuses = field(default_factory=CreatureBonuses)
    details: CreatureDetails = field(default_factory=CreatureDetails)
    skills: dict[str, SkillData] = field(default_factory=lambda: _initial_skills(row.slug for row in SKILL_CATALOG))
    spells: dict[str, SpellSlotData] = field(default_factory=_initial_spell_slots)
    languages: SimpleTrait = field(default_factory=SimpleTrait)

    @staticmethod
    def senses_migrated(source: Mapping[str, Any]) -> bool:
        flags = source.get("flags")
        return isinstance(flags, Mapping) and bool(flags.get(SENSES_MIGRATED_FLAG))

    @classmethod
    def migrate_data(cls, source: MutableMapping[str, Any], *, sense_keys: Iterable[str] | None = None) -> None:
        """Apply every legacy-shape upgrade to ``source`` in place.

        Legacy senses are read at most once: a successful migration sets
        ``flags.legacy_senses_migrated`` and later calls leave the record alone.
        """

        if cls.senses_migrated(source):
            return
        migrate_senses_data(source, sense_type_keys() if sense_keys is None else sense_keys)
        if legacy_senses_text(source) is None or not _has_sense_record(source):
            return
        flags = source.setdefault("flags", {})
        if isinstance(flags, MutableMapping):
            flags[SENSES_MIGRATED_FLAG] = True

    @classmethod
    def from_source(cls, source: Mapping[str, Any], *, sense_keys: Iterable[str] | None = None) -> "CreatureTemplate":
        data = copy.deepcopy(dict(source or {}))
        cls.migrate_data(data, sense_keys=sense_keys)

        details = _mapping(data.get("details"))
        traits = _mapping(data.get("traits"))

        skills = _initial_skills(row.slug for row in SKILL_CATALOG)
        for slug, raw_skill in _mapping(data.get("skills")).items():
            skills[str(slug)] = SkillData.from_mapping(str(slug), raw_skill)

        spells = _initial_spell_slots()
        for key, raw_slot in _mapping(data.get("spells")).items():
            if key in spells:
                spells[key] = SpellSlotData.from_mapping(raw_slot)

        return cls(
            attributes=CreatureAttributes.from_mapping(data.get("attributes")),
            bonuses=CreatureBonuses.from_mapping(data.get("bonuses")),
            details=CreatureDetails(
                alignment=_text(details.get("alignment")),
                race=_text(details.get("race")),
            ),
            skills=skills,
            spells=spells,
            languages=SimpleTrait.from_mapping(traits.get("languages")),
        )

    def to_dict(self) -> dict[str, Any]:
        bonuses = asdict(self.bonuses)
        spell_dc = bonuses.pop("spell_dc")
        bonuses["spell"] = {"dc": spell_dc}
        return {
            "attributes": asdict(self.attributes),
            "bonuses": bonuses,
            "details": asdict(self.details),
            "skills": {slug: asdict(skill) for slug, skill in self.skills.items()},
            "spells": {key: asdict(slot) for key, slot in self.spells.items()},
            "traits": {"languages": asdict(self.languages)},
        }
