"""
app/models/conversation.py

Purpose: Conversation record

One mutable document per phone number session. `version` is bumped on
every write and is the compare-and-set token for updates.
"""

import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field

from app.flow.states import ConversationState, parse_state

# Fields derived from the working image; cleared on reset
DERIVED_FIELDS = ("image_url", "video_prompt", "video_url", "operation_id")


class Conversation(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    phone_number: str
    state: str = ConversationState.WAITING_FOR_IMAGE.value
    image_url: Optional[str] = None
    video_prompt: Optional[str] = None
    video_url: Optional[str] = None
    operation_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 0

    @property
    def current_state(self) -> Optional[ConversationState]:
        """The parsed state, or None when the stored value is unrecognized."""
        return parse_state(self.state)

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        doc["_id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Conversation":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls(**data)


def reset_fields() -> Dict[str, Any]:
    """Changes that return a conversation to its initial state."""
    changes: Dict[str, Any] = {field: None for field in DERIVED_FIELDS}
    changes["state"] = ConversationState.WAITING_FOR_IMAGE
    return changes
