from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SkillDefinition:
    slug: str
    label: str
    ability: str


SKILL_CATALOG: tuple[SkillDefinition, ...] = (
    SkillDefinition(slug="acr", label="Acrobatics", ability="dex"),
    SkillDefinition(slug="ani", label="Animal Handling", ability="wis"),
    SkillDefinition(slug="arc", label="Arcana", ability="int"),
    SkillDefinition(slug="ath", label="Athletics", ability="str"),
    SkillDefinition(slug="dec", label="Deception", ability="cha"),
    SkillDefinition(slug="his", label="History", ability="int"),
    SkillDefinition(slug="ins", label="Insight", ability="wis"),
    SkillDefinition(slug="itm", label="Intimidation", ability="cha"),
    SkillDefinition(slug="inv", label="Investigation", ability="int"),
    SkillDefinition(slug="med", label="Medicine", ability="wis"),
    SkillDefinition(slug="nat", label="Nature", ability="int"),
    SkillDefinition(slug="prc", label="Perception", ability="wis"),
    SkillDefinition(slug="prf", label="Performance", ability="cha"),
    SkillDefinition(slug="per", label="Persuasion", ability="cha"),
    SkillDefinition(slug="rel", label="Religion", ability="int"),
    SkillDefinition(slug="slt", label="Sleight of Hand", ability="dex"),
    SkillDefinition(slug="ste", label="Stealth", ability="dex"),
    SkillDefinition(slug="sur", label="Survival", ability="wis"),
)

SKILL_BY_SLUG: dict[str, SkillDefinition] = {row.slug: row for row in SKILL_CATALOG}

_SKILL_ALIASES: dict[str, str] = {
    "_".join(row.label.lower().split()): row.slug for row in SKILL_CATALOG
}


def normalize_skill_slug(value: str) -> str:
    text = str(value or "").strip().lower()
    text = text.replace("/", " ")
    text = text.replace("-", " ")
    text = text.replace("'", "")
    slug = "_".join(part for part in text.split() if part)
    return _SKILL_ALIASES.get(slug, slug)


def default_ability_for_skill(slug: str) -> str | None:
    row = SKILL_BY_SLUG.get(normalize_skill_slug(slug))
    return row.ability if row else None
