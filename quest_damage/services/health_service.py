"""
Health service.
The only writer of the player's health pool.
"""
import logging
from typing import Protocol, runtime_checkable
from sqlalchemy.exc import SQLAlchemyError

from quest_damage.exceptions import InvalidDamageAmountException, HealthUpdateException
from quest_damage.models import Player
from quest_damage.repositories.player_repository import PlayerRepository

logger = logging.getLogger("quest_damage.health")


@runtime_checkable
class HealthCollaborator(Protocol):
    """Interface the damage engine uses to mutate health"""

    def apply_damage(self, amount: int) -> None:
        """Subtract damage from health, never going below zero."""
        ...


class HealthService:
    """Health pool backed by the players table"""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self.player_repo = PlayerRepository()

    def get_player(self) -> Player:
        db = self.session_factory()
        try:
            return self.player_repo.get(db)
        finally:
            db.close()

    def apply_damage(self, amount: int) -> None:
        """
        Apply damage to the player.

        Raises:
            InvalidDamageAmountException: If amount is not positive
            HealthUpdateException: If the new health could not be stored
        """
        if amount <= 0:
            raise InvalidDamageAmountException(amount)

        db = self.session_factory()
        try:
            player = self.player_repo.get(db)
            old_health = player.health
            player.health = max(0, player.health - amount)
            self.player_repo.update(db, player)
            logger.info(f"Player took {amount} damage: {old_health} -> {player.health}")
        except SQLAlchemyError as e:
            db.rollback()
            raise HealthUpdateException(str(e)) from e
        finally:
            db.close()
