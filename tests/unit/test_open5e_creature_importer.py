import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from bestiary.infrastructure.db.inmemory.repos import InMemoryCreatureRepository
from bestiary.infrastructure.open5e_creature_importer import Open5eCreatureImporter


class _StubClient:
    def __init__(self, pages: dict[int, dict]) -> None:
        self.pages = dict(pages)
        self.requested: list[int] = []
        self.closed = False

    def list_monsters(self, page: int = 1) -> dict:
        self.requested.append(page)
        return self.pages.get(page, {"results": []})

    def close(self) -> None:
        self.closed = True


class Open5eCreatureImporterTests(unittest.TestCase):
    def test_map_monster_keeps_legacy_senses_text(self) -> None:
        importer = Open5eCreatureImporter(repository=InMemoryCreatureRepository(), client=_StubClient({}))

        source = importer.map_monster(
            {
                "name": "Ember Ghoul",
                "type": "Undead",
                "subtype": "ghoul",
                "alignment": "chaotic evil",
                "senses": "darkvision 60 ft., passive Perception 10",
                "languages": "Common",
            }
        )

        self.assertEqual("darkvision 60 ft., passive Perception 10", source["traits"]["senses"])
        self.assertEqual("undead (ghoul)", source["details"]["race"])
        self.assertEqual("chaotic evil", source["details"]["alignment"])
        self.assertEqual({"value": [], "custom": "Common"}, source["traits"]["languages"])

    def test_map_monster_skips_missing_senses(self) -> None:
        importer = Open5eCreatureImporter(repository=InMemoryCreatureRepository(), client=_StubClient({}))

        source = importer.map_monster({"name": "Rat", "type": "beast", "languages": "-"})

        self.assertNotIn("senses", source["traits"])
        self.assertEqual("", source["traits"]["languages"]["custom"])
        self.assertEqual("beast", source["details"]["race"])

    def test_import_pages_migrates_senses_and_upserts_by_name(self) -> None:
        repo = InMemoryCreatureRepository()
        repo.create("Ember Ghoul", {"traits": {"senses": "stale"}})
        client = _StubClient(
            {
                1: {
                    "results": [
                        {"name": "Ember Ghoul", "type": "undead", "senses": "darkvision 60 ft., passive Perception 10"},
                        {"name": "Cave Bat", "type": "beast", "senses": "blindsight 60 ft., passive Perception 11"},
                    ]
                },
                2: {"results": [{"name": "Scout", "senses": "passive Perception 15"}, {"name": ""}, "junk"]},
            }
        )

        imported = Open5eCreatureImporter(repository=repo, client=client).import_pages(pages=2)

        self.assertEqual(3, imported)
        self.assertEqual([1, 2], client.requested)
        self.assertTrue(client.closed)
        rows = {row.name: row.source for row in repo.list_sources()}
        self.assertEqual(3, len(rows))
        self.assertEqual({"darkvision": 60}, rows["Ember Ghoul"]["attributes"]["senses"])
        self.assertEqual({"blindsight": 60}, rows["Cave Bat"]["attributes"]["senses"])
        self.assertEqual({"special": "passive Perception 15"}, rows["Scout"]["attributes"]["senses"])

    def test_import_stops_after_the_last_reported_page(self) -> None:
        repo = InMemoryCreatureRepository()
        client = _StubClient(
            {
                1: {"next": "https://api.open5e.com/monsters/?page=2", "results": [{"name": "Imp", "senses": "darkvision 120 ft."}]},
                2: {"next": None, "results": [{"name": "Quasit", "senses": "darkvision 120 ft."}]},
                3: {"next": None, "results": [{"name": "Lemure", "senses": "darkvision 120 ft."}]},
            }
        )

        imported = Open5eCreatureImporter(repository=repo, client=client).import_pages(pages=5)

        self.assertEqual(2, imported)
        self.assertEqual([1, 2], client.requested)
        self.assertIsNone(repo.find_by_name("Lemure"))

    def test_import_closes_client_when_repository_fails(self) -> None:
        class _FailingRepo(InMemoryCreatureRepository):
            def create(self, name, source):
                raise RuntimeError("write failed")

        client = _StubClient({1: {"results": [{"name": "Imp", "senses": "darkvision 120 ft."}]}})

        with self.assertRaises(RuntimeError):
            Open5eCreatureImporter(repository=_FailingRepo(), client=client).import_pages()

        self.assertTrue(client.closed)


if __name__ == "__main__":
    unittest.main()
