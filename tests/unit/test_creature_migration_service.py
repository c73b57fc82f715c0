import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from bestiary.application.services.creature_migration_service import CreatureMigrationService
from bestiary.domain.repositories import StoredCreature
from bestiary.infrastructure.db.inmemory.repos import InMemoryCreatureRepository


def _repo() -> InMemoryCreatureRepository:
    return InMemoryCreatureRepository(
        {
            1: StoredCreature(id=1, name="Goblin", source={"traits": {"senses": "Darkvision 60 ft"}}),
            2: StoredCreature(id=2, name="Wolf", source={"traits": {"senses": "Keen hearing and smell"}}),
            3: StoredCreature(
                id=3,
                name="Ooze",
                source={"attributes": {"senses": {"blindsight": 60, "units": "ft"}}},
            ),
            4: StoredCreature(id=4, name="Commoner", source={"traits": {"senses": ""}, "attributes": {"senses": {}}}),
        }
    )


class CreatureMigrationServiceTests(unittest.TestCase):
    def test_run_migrates_changed_records_and_reports_counts(self) -> None:
        repo = _repo()

        report = CreatureMigrationService(repo).run()

        self.assertEqual(4, report.scanned)
        self.assertEqual(3, report.migrated)
        self.assertEqual(1, report.special_fallbacks)
        self.assertEqual(1, report.unchanged)
        self.assertEqual([1, 2, 4], report.migrated_ids)
        self.assertEqual({"darkvision": 60}, repo.get_source(1).source["attributes"]["senses"])
        self.assertEqual({"special": "Keen hearing and smell"}, repo.get_source(2).source["attributes"]["senses"])
        self.assertEqual("Darkvision 60 ft", repo.get_source(1).source["traits"]["senses"])
        self.assertEqual(3, repo.save_calls)
        self.assertTrue(repo.get_source(1).source["flags"]["legacy_senses_migrated"])
        self.assertNotIn("flags", repo.get_source(3).source)

    def test_dry_run_reports_without_saving(self) -> None:
        repo = _repo()

        report = CreatureMigrationService(repo).run(dry_run=True)

        self.assertEqual(3, report.migrated)
        self.assertEqual(0, repo.save_calls)
        self.assertNotIn("attributes", repo.get_source(1).source)

    def test_second_run_changes_nothing(self) -> None:
        repo = _repo()
        service = CreatureMigrationService(repo)
        service.run()

        report = service.run()

        self.assertEqual(0, report.migrated)
        self.assertEqual(4, report.unchanged)

    def test_edits_made_after_a_run_survive_the_next_run(self) -> None:
        repo = _repo()
        service = CreatureMigrationService(repo)
        service.run()
        edited = repo.get_source(1).source
        edited["attributes"]["senses"]["darkvision"] = 120
        repo.save_source(1, edited)

        report = service.run()

        self.assertEqual(0, report.migrated)
        self.assertEqual({"darkvision": 120}, repo.get_source(1).source["attributes"]["senses"])
        self.assertEqual("Darkvision 60 ft", repo.get_source(1).source["traits"]["senses"])

    def test_drop_legacy_removes_migrated_text(self) -> None:
        repo = _repo()
        service = CreatureMigrationService(repo, drop_legacy=True)

        first = service.run()
        second = service.run()

        self.assertEqual(3, first.migrated)
        self.assertEqual({}, repo.get_source(1).source["traits"])
        self.assertEqual({"special": "Keen hearing and smell"}, repo.get_source(2).source["attributes"]["senses"])
        self.assertEqual(0, second.migrated)

    def test_drop_legacy_keeps_text_when_record_could_not_be_migrated(self) -> None:
        repo = InMemoryCreatureRepository(
            {9: StoredCreature(id=9, name="Broken", source={"traits": {"senses": "Darkvision 60 ft"}, "attributes": []})}
        )

        report = CreatureMigrationService(repo, drop_legacy=True).run()

        self.assertEqual(0, report.migrated)
        self.assertEqual("Darkvision 60 ft", repo.get_source(9).source["traits"]["senses"])

    def test_custom_sense_keys_are_honoured(self) -> None:
        repo = _repo()

        CreatureMigrationService(repo, sense_keys={"hearing"}).run()

        self.assertEqual({"special": "Darkvision 60 ft"}, repo.get_source(1).source["attributes"]["senses"])


if __name__ == "__main__":
    unittest.main()
