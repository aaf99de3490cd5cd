"""
Player repository - Data access layer for Player model.
Handles all database queries related to the player's health pool.
"""
from sqlalchemy.orm import Session

from quest_damage.constants import DEFAULT_PLAYER_HEALTH, DEFAULT_PLAYER_MAX_HEALTH
from quest_damage.models import Player


class PlayerRepository:
    """Repository for Player data access"""

    @staticmethod
    def get(db: Session) -> Player:
        """
        Get the player (creates with defaults if not exists).

        Returns:
            Player object
        """
        player = db.query(Player).first()
        if not player:
            player = Player(
                health=DEFAULT_PLAYER_HEALTH,
                max_health=DEFAULT_PLAYER_MAX_HEALTH
            )
            db.add(player)
            db.commit()
            db.refresh(player)
        return player

    @staticmethod
    def update(db: Session, player: Player) -> Player:
        """Update player"""
        db.commit()
        db.refresh(player)
        return player
