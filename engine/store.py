"""In-memory game store: the canonical owner of combatant records.

The combat engine never writes combatant fields directly. It reads copies
from the store and writes back through the named setters below, each of
which replaces the stored record with an updated copy and returns it.
"""

from __future__ import annotations

import logging

from models.characters import Combatant, ItemDefinition
from models.notifications import Notification

logger = logging.getLogger(__name__)


class GameStore:
    """Characters keyed by id, plus a queue of pending notifications."""

    def __init__(self, characters: list[Combatant] | None = None) -> None:
        self._characters: dict[str, Combatant] = {}
        self.notifications: list[Notification] = []
        for character in characters or []:
            self.put_character(character)

    def get_character(self, character_id: str) -> Combatant | None:
        return self._characters.get(character_id)

    def put_character(self, character: Combatant) -> Combatant:
        self._characters[character.id] = character
        return character

    def _require(self, character_id: str) -> Combatant:
        character = self._characters.get(character_id)
        if character is None:
            raise ValueError(f"Character '{character_id}' not found")
        return character

    def _replace(self, character_id: str, **changes) -> Combatant:
        updated = self._require(character_id).model_copy(update=changes)
        self._characters[character_id] = updated
        return updated

    def update_health(self, character_id: str, health: int) -> Combatant:
        """Set current HP, clamped to [0, max_hp]."""
        character = self._require(character_id)
        return self._replace(character_id, current_hp=max(0, min(character.max_hp, health)))

    def gain_experience(self, character_id: str, amount: int) -> Combatant:
        character = self._require(character_id)
        return self._replace(character_id, experience=character.experience + amount)

    def gain_gold(self, character_id: str, amount: int) -> Combatant:
        character = self._require(character_id)
        return self._replace(character_id, gold=character.gold + amount)

    def add_item(self, character_id: str, item: ItemDefinition) -> Combatant:
        character = self._require(character_id)
        return self._replace(character_id, inventory=[*character.inventory, item])

    def remove_item(self, character_id: str, item_id: str) -> Combatant:
        """Remove one copy of an item from a character's inventory.

        Raises:
            ValueError: If the character or the item is missing.
        """
        character = self._require(character_id)
        inventory = list(character.inventory)
        for index, item in enumerate(inventory):
            if item.id == item_id:
                del inventory[index]
                return self._replace(character_id, inventory=inventory)
        raise ValueError(f"{character.name} has no '{item_id}'")

    def notify(self, notification: Notification) -> None:
        logger.info("[%s] %s", notification.severity.value, notification.message)
        self.notifications.append(notification)

    def pop_notifications(self) -> list[Notification]:
        """Return and clear all pending notifications."""
        pending, self.notifications = self.notifications, []
        return pending
