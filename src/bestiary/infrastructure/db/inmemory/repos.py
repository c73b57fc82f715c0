import copy
from typing import Any, Dict, List, Optional

from bestiary.domain.repositories import CreatureRepository, StoredCreature


class InMemoryCreatureRepository(CreatureRepository):
    def __init__(self, creatures: Optional[Dict[int, StoredCreature]] = None) -> None:
        self._creatures: Dict[int, StoredCreature] = {
            int(key): copy.deepcopy(value) for key, value in (creatures or {}).items()
        }
        self._next_id = max(self._creatures.keys(), default=0) + 1
        self.save_calls = 0

    def list_sources(self) -> List[StoredCreature]:
        return [copy.deepcopy(self._creatures[key]) for key in sorted(self._creatures)]

    def get_source(self, creature_id: int) -> Optional[StoredCreature]:
        row = self._creatures.get(int(creature_id))
        return copy.deepcopy(row) if row is not None else None

    def save_source(self, creature_id: int, source: Dict[str, Any]) -> None:
        row = self._creatures.get(int(creature_id))
        if row is None:
            raise KeyError(f"Unknown creature id: {creature_id}")
        row.source = copy.deepcopy(source)
        self.save_calls += 1

    def create(self, name: str, source: Dict[str, Any]) -> StoredCreature:
        row = StoredCreature(id=self._next_id, name=str(name), source=copy.deepcopy(source))
        self._creatures[row.id] = row
        self._next_id += 1
        return copy.deepcopy(row)
