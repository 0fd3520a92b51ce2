"""
app/services/conversation_service.py

Purpose: Conversation persistence

- Latest conversation per phone number
- Create on first contact
- Compare-and-set updates guarded by `version` (and optionally the
  expected prior state)
- Enforces valid state transitions
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pymongo import DESCENDING

from app.core.exceptions import ConcurrentUpdateError, ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState, is_valid_transition, parse_state
from app.models.conversation import Conversation, reset_fields

logger = get_logger(__name__)


def _normalize(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in changes.items()
    }


class ConversationRepository:
    """Reads and writes Conversation records in a Motor collection."""

    def __init__(self, collection):
        self._collection = collection

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        doc = await self._collection.find_one({"_id": conversation_id})
        return Conversation.from_document(doc) if doc else None

    async def get_latest_by_phone(self, phone_number: str) -> Optional[Conversation]:
        """
        Returns the most recently created conversation for a number.
        """
        doc = await self._collection.find_one(
            {"phone_number": phone_number},
            sort=[("created_at", DESCENDING)]
        )
        return Conversation.from_document(doc) if doc else None

    async def create(self, phone_number: str) -> Conversation:
        conversation = Conversation(phone_number=phone_number)
        await self._collection.insert_one(conversation.to_document())
        logger.info(
            "New conversation created",
            extra={"conversation_id": conversation.id, "phone": phone_number}
        )
        return conversation

    async def get_or_create(self, phone_number: str) -> Conversation:
        conversation = await self.get_latest_by_phone(phone_number)
        if conversation is None:
            conversation = await self.create(phone_number)
        return conversation

    async def update(
        self,
        conversation: Conversation,
        validate_transition: bool = True,
        **changes: Any
    ) -> Conversation:
        """
        Applies changes if the stored record still has the version we read.

        Args:
            conversation: The record as last read
            validate_transition: Whether to enforce state transition rules
            **changes: Field values to set

        Returns:
            The updated conversation

        Raises:
            ConcurrentUpdateError: If the record changed since it was read
            ValueError: If the state transition is invalid
        """
        changes = _normalize(changes)
        new_state = changes.get("state")
        current = conversation.current_state

        if validate_transition and new_state is not None and current is not None:
            target = ConversationState(new_state)
            if not is_valid_transition(current, target):
                raise ValueError(f"Invalid state transition: {current.value} -> {target.value}")

        now = datetime.utcnow()
        result = await self._collection.update_one(
            {"_id": conversation.id, "version": conversation.version},
            {
                "$set": {**changes, "updated_at": now},
                "$inc": {"version": 1},
            }
        )

        if result.matched_count == 0:
            logger.warning(
                "Conversation changed since read",
                extra={"conversation_id": conversation.id, "expected_version": conversation.version}
            )
            raise ConcurrentUpdateError(conversation.id, details={"version": conversation.version})

        updated = conversation.model_copy(
            update={**changes, "updated_at": now, "version": conversation.version + 1}
        )
        if new_state is not None and new_state != conversation.state:
            with LogContext(conversation_id=conversation.id, state=new_state):
                logger.info(f"State updated: {conversation.state} -> {new_state}")
        return updated

    async def update_if_state(
        self,
        conversation_id: str,
        expected_state: ConversationState,
        **changes: Any
    ) -> Optional[Conversation]:
        """
        Re-reads the conversation and applies changes only while it is
        still in `expected_state`. Used by background jobs, whose view of
        the conversation may be stale.

        Returns:
            The updated conversation, or None if it has moved on
        """
        conversation = await self.get(conversation_id)
        if conversation is None:
            raise ResourceNotFoundError(f"Conversation {conversation_id} not found")

        if parse_state(conversation.state) is not expected_state:
            logger.info(
                f"Skipping stale update: expected {expected_state.value}, found {conversation.state}",
                extra={"conversation_id": conversation_id}
            )
            return None

        try:
            return await self.update(conversation, **changes)
        except ConcurrentUpdateError:
            # One more read: the concurrent writer may have left the state as is
            conversation = await self.get(conversation_id)
            if conversation is None or parse_state(conversation.state) is not expected_state:
                return None
            return await self.update(conversation, **changes)

    async def reset(
        self,
        conversation: Conversation,
        reason: str = "manual"
    ) -> Conversation:
        """
        Returns the conversation to WAITING_FOR_IMAGE with derived fields cleared.
        """
        updated = await self.update(conversation, **reset_fields())
        logger.info(
            "Conversation reset",
            extra={"conversation_id": conversation.id, "reason": reason}
        )
        return updated
