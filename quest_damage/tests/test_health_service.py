"""
Tests for HealthService and PlayerRepository.
"""
import pytest

from quest_damage.constants import DEFAULT_PLAYER_HEALTH, DEFAULT_PLAYER_MAX_HEALTH
from quest_damage.exceptions import InvalidDamageAmountException
from quest_damage.models import Player
from quest_damage.repositories.player_repository import PlayerRepository
from quest_damage.services.health_service import HealthCollaborator, HealthService


class TestPlayerRepository:

    def test_player_created_with_defaults(self, db_session):
        player = PlayerRepository.get(db_session)

        assert player.health == DEFAULT_PLAYER_HEALTH
        assert player.max_health == DEFAULT_PLAYER_MAX_HEALTH

    def test_single_player_row(self, db_session):
        PlayerRepository.get(db_session)
        PlayerRepository.get(db_session)

        assert db_session.query(Player).count() == 1


class TestApplyDamage:
    """Tests for HealthService.apply_damage"""

    def test_damage_reduces_health(self, session_factory):
        service = HealthService(session_factory)

        service.apply_damage(12)

        assert service.get_player().health == DEFAULT_PLAYER_HEALTH - 12

    def test_health_never_goes_negative(self, session_factory):
        service = HealthService(session_factory)

        service.apply_damage(DEFAULT_PLAYER_HEALTH + 30)

        assert service.get_player().health == 0

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_rejected(self, session_factory, amount):
        service = HealthService(session_factory)

        with pytest.raises(InvalidDamageAmountException):
            service.apply_damage(amount)

        assert service.get_player().health == DEFAULT_PLAYER_HEALTH

    def test_satisfies_collaborator_interface(self, session_factory):
        assert isinstance(HealthService(session_factory), HealthCollaborator)


class TestEndToEnd:
    """Damage pass against the SQL-backed collaborators"""

    def test_pass_with_stored_quests(self, session_factory, db_session, now):
        from datetime import timedelta
        from quest_damage.constants import DAILY_QUEST_DAMAGE_PER_DAY
        from quest_damage.repositories.quest_repository import QuestRepository
        from quest_damage.services.damage_tracking_service import DamageTrackingService
        from quest_damage.services.quest_provider import SqlQuestProvider
        from quest_damage.tests.conftest import create_quest

        quest = create_quest(db_session, "daily", due_date=now - timedelta(days=3))
        QuestRepository.add_completion(db_session, quest, now - timedelta(days=2))
        create_quest(db_session, "one_time", due_date=now - timedelta(days=3), is_completed=True)

        health = HealthService(session_factory)
        service = DamageTrackingService(
            session_factory, SqlQuestProvider(session_factory), health, clock=lambda: now
        )

        result = service.calculate_and_apply_damage()

        # Completion on day -2 leaves day -1 missed
        assert result.error is None
        assert result.entities_evaluated == 1
        assert result.total_damage == DAILY_QUEST_DAMAGE_PER_DAY
        assert health.get_player().health == DEFAULT_PLAYER_HEALTH - DAILY_QUEST_DAMAGE_PER_DAY
