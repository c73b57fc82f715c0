import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from bestiary.domain.repositories import CreatureRepository, StoredCreature
from .connection import SessionLocal


logger = logging.getLogger(__name__)


def _row_to_creature(row) -> Optional[StoredCreature]:
    raw = getattr(row, "data_json", None)
    if isinstance(raw, dict):
        source = raw
    else:
        try:
            source = json.loads(raw or "{}")
        except json.JSONDecodeError:
            logger.warning(
                "Skipping creature with undecodable data",
                extra={"creature_id": getattr(row, "creature_id", None)},
            )
            return None
    if not isinstance(source, dict):
        logger.warning(
            "Skipping creature whose data is not an object",
            extra={"creature_id": getattr(row, "creature_id", None)},
        )
        return None
    return StoredCreature(id=int(row.creature_id), name=str(row.name or ""), source=source)


class MysqlCreatureRepository(CreatureRepository):
    def __init__(self, session_factory=None) -> None:
        self._session_factory = session_factory or SessionLocal

    def list_sources(self) -> List[StoredCreature]:
        with self._session_factory() as session:
            rows = session.execute(
                text("SELECT creature_id, name, data_json FROM creature ORDER BY creature_id")
            ).all()
        creatures = [_row_to_creature(row) for row in rows]
        return [row for row in creatures if row is not None]

    def get_source(self, creature_id: int) -> Optional[StoredCreature]:
        with self._session_factory() as session:
            row = session.execute(
                text("SELECT creature_id, name, data_json FROM creature WHERE creature_id = :creature_id"),
                {"creature_id": int(creature_id)},
            ).first()
        return _row_to_creature(row) if row is not None else None

    def save_source(self, creature_id: int, source: Dict[str, Any]) -> None:
        with self._session_factory.begin() as session:
            session.execute(
                text("UPDATE creature SET data_json = :data_json WHERE creature_id = :creature_id"),
                {"data_json": json.dumps(source, ensure_ascii=False), "creature_id": int(creature_id)},
            )

    def create(self, name: str, source: Dict[str, Any]) -> StoredCreature:
        with self._session_factory.begin() as session:
            result = session.execute(
                text("INSERT INTO creature (name, data_json) VALUES (:name, :data_json)"),
                {"name": str(name), "data_json": json.dumps(source, ensure_ascii=False)},
            )
            creature_id = int(result.lastrowid)
        return StoredCreature(id=creature_id, name=str(name), source=dict(source))

    def find_by_name(self, name: str) -> Optional[StoredCreature]:
        with self._session_factory() as session:
            row = session.execute(
                text("SELECT creature_id, name, data_json FROM creature WHERE LOWER(name) = :name LIMIT 1"),
                {"name": str(name or "").strip().lower()},
            ).first()
        return _row_to_creature(row) if row is not None else None
