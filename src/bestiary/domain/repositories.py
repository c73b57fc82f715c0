from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class StoredCreature:
    id: int
    name: str
    source: Dict[str, Any] = field(default_factory=dict)


class CreatureRepository(ABC):
    @abstractmethod
    def list_sources(self) -> List[StoredCreature]:
        raise NotImplementedError

    @abstractmethod
    def get_source(self, creature_id: int) -> Optional[StoredCreature]:
        raise NotImplementedError

    @abstractmethod
    def save_source(self, creature_id: int, source: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def create(self, name: str, source: Dict[str, Any]) -> StoredCreature:
        raise NotImplementedError

    def find_by_name(self, name: str) -> Optional[StoredCreature]:
        wanted = str(name or "").strip().lower()
        for row in self.list_sources():
            if row.name.strip().lower() == wanted:
                return row
        return None
