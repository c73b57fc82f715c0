from __future__ import annotations

import logging
from typing import Any, Iterable

from bestiary.domain.models.creature import CreatureTemplate
from bestiary.domain.repositories import CreatureRepository
from bestiary.domain.rules_config import sense_type_keys


class Open5eCreatureImporter:
    """Pull Open5e monsters into creature sources, upgrading their free-text senses on the way in."""

    def __init__(self, repository: CreatureRepository, client, *, sense_keys: Iterable[str] | None = None) -> None:
        self.repository = repository
        self.client = client
        self._sense_keys = frozenset(sense_keys) if sense_keys is not None else sense_type_keys()
        self._logger = logging.getLogger(__name__)

    def map_monster(self, payload: dict[str, Any]) -> dict[str, Any]:
        kind = str(payload.get("type") or "").strip().lower()
        subtype = str(payload.get("subtype") or "").strip().lower()
        race = f"{kind} ({subtype})" if kind and subtype else kind or subtype
        languages = str(payload.get("languages") or "").strip()
        if languages in {"-", "—"}:
            languages = ""

        source: dict[str, Any] = {
            "details": {
                "alignment": str(payload.get("alignment") or "").strip(),
                "race": race,
            },
            "traits": {
                "languages": {"value": [], "custom": languages},
            },
        }
        senses = payload.get("senses")
        if isinstance(senses, str):
            source["traits"]["senses"] = senses
        return source

    def _fetch_page(self, page: int) -> tuple[list[dict[str, Any]], bool]:
        """Monsters on ``page`` and whether the listing reports a following page."""

        payload = self.client.list_monsters(page=page)
        if not isinstance(payload, dict):
            return [], False
        rows = payload.get("results", [])
        has_next = bool(payload["next"]) if "next" in payload else True
        if not isinstance(rows, list):
            return [], has_next
        return [row for row in rows if isinstance(row, dict)], has_next

    def import_pages(self, pages: int = 1, start_page: int = 1) -> int:
        imported = 0
        first = max(1, int(start_page))
        try:
            for page in range(first, first + max(1, int(pages))):
                rows, has_next = self._fetch_page(page)
                for row in rows:
                    name = str(row.get("name", "")).strip()
                    if not name:
                        continue
                    source = self.map_monster(row)
                    CreatureTemplate.migrate_data(source, sense_keys=self._sense_keys)

                    existing = self.repository.find_by_name(name)
                    if existing is not None:
                        self.repository.save_source(existing.id, source)
                    else:
                        self.repository.create(name, source)
                    imported += 1
                if not has_next:
                    break
        finally:
            self.client.close()

        self._logger.info("Imported Open5e creatures", extra={"imported": imported, "start_page": first})
        return imported
