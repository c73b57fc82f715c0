from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Iterable

from bestiary.domain.models.creature import CreatureTemplate
from bestiary.domain.repositories import CreatureRepository
from bestiary.domain.services.sense_migration import legacy_senses_text, parse_legacy_senses
from bestiary.domain.rules_config import sense_type_keys


@dataclass
class MigrationReport:
    scanned: int = 0
    migrated: int = 0
    special_fallbacks: int = 0
    unchanged: int = 0
    migrated_ids: list[int] = field(default_factory=list)


class CreatureMigrationService:
    """Batch upgrade pass that migrates every stored creature source once."""

    def __init__(
        self,
        repository: CreatureRepository,
        *,
        sense_keys: Iterable[str] | None = None,
        drop_legacy: bool = False,
    ) -> None:
        self._repository = repository
        self._sense_keys = frozenset(sense_keys) if sense_keys is not None else sense_type_keys()
        self._drop_legacy = bool(drop_legacy)
        self._logger = logging.getLogger(__name__)

    def migrate_source(self, source: dict) -> tuple[dict, bool]:
        """Return a migrated copy of ``source`` and whether it fell back to special text.

        Records already carrying the migration marker come back unchanged, so
        edits made to ``attributes.senses`` after a run are never overwritten.
        """

        migrated = copy.deepcopy(source)
        if CreatureTemplate.senses_migrated(migrated):
            return migrated, False
        legacy = legacy_senses_text(migrated)
        CreatureTemplate.migrate_data(migrated, sense_keys=self._sense_keys)

        if legacy is None or not CreatureTemplate.senses_migrated(migrated):
            return migrated, False

        fell_back = bool(legacy) and not parse_legacy_senses(legacy, self._sense_keys).matched
        if self._drop_legacy:
            migrated["traits"].pop("senses", None)
        return migrated, fell_back

    def run(self, *, dry_run: bool = False) -> MigrationReport:
        report = MigrationReport()
        for stored in self._repository.list_sources():
            report.scanned += 1
            migrated, fell_back = self.migrate_source(stored.source)
            if migrated == stored.source:
                report.unchanged += 1
                continue

            report.migrated += 1
            report.migrated_ids.append(stored.id)
            if fell_back:
                report.special_fallbacks += 1
            if not dry_run:
                self._repository.save_source(stored.id, migrated)

        self._logger.info(
            "Creature senses migration finished",
            extra={
                "scanned": report.scanned,
                "migrated": report.migrated,
                "special_fallbacks": report.special_fallbacks,
                "unchanged": report.unchanged,
                "dry_run": dry_run,
            },
        )
        return report
