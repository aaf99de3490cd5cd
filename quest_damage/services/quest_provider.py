"""
Quest provider.
Read-only source of quest snapshots for the damage engine.
"""
from typing import List, Optional, Protocol, runtime_checkable

from quest_damage.repositories.quest_repository import QuestRepository
from quest_damage.schemas import QuestSnapshot


@runtime_checkable
class QuestProvider(Protocol):
    """
    Interface the damage engine uses to read quests.

    Implementations:
    - SqlQuestProvider: reads the quests table (production)
    - in-memory fakes (testing)
    """

    def fetch_active_incomplete_entities(self) -> List[QuestSnapshot]:
        """Quests that are active and not completed."""
        ...

    def fetch_entity(self, quest_id: int) -> Optional[QuestSnapshot]:
        """Load one quest. Returns None if not found."""
        ...

    def fetch_all_entities(self) -> List[QuestSnapshot]:
        """All quests regardless of state."""
        ...


class SqlQuestProvider:
    """Quest provider backed by the quests table"""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self.quest_repo = QuestRepository()

    def fetch_active_incomplete_entities(self) -> List[QuestSnapshot]:
        db = self.session_factory()
        try:
            quests = self.quest_repo.get_active_incomplete(db)
            return [self.quest_repo.to_snapshot(q) for q in quests]
        finally:
            db.close()

    def fetch_entity(self, quest_id: int) -> Optional[QuestSnapshot]:
        db = self.session_factory()
        try:
            quest = self.quest_repo.get_by_id(db, quest_id)
            return self.quest_repo.to_snapshot(quest) if quest else None
        finally:
            db.close()

    def fetch_all_entities(self) -> List[QuestSnapshot]:
        db = self.session_factory()
        try:
            return [self.quest_repo.to_snapshot(q) for q in self.quest_repo.get_all(db)]
        finally:
            db.close()
