"""
app/flow/states.py

Purpose: Defines all conversation states

- Enum for each step in the image → edit → video flow
- Single source of truth for flow stages
- State transition validation
- Metadata for each state (in-progress, user input, etc.)
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional
from dataclasses import dataclass


class ConversationState(str, Enum):
    """
    Defines all possible states of a conversation.
    Each state represents a specific step in the user journey.
    """

    # Initial state
    WAITING_FOR_IMAGE = "waiting_for_image"

    # Image editing
    WAITING_FOR_EDIT_PROMPT = "waiting_for_edit_prompt"
    PROCESSING_EDIT = "processing_edit"

    # Video generation
    WAITING_FOR_VIDEO_DECISION = "waiting_for_video_decision"
    WAITING_FOR_VIDEO_PROMPT = "waiting_for_video_prompt"
    GENERATING_VIDEO = "generating_video"

    # Terminal states (both loop back to WAITING_FOR_IMAGE)
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StateMetadata:
    """
    Metadata associated with each conversation state.
    """
    name: ConversationState
    display_name: str
    in_progress: bool = False  # A background job owns the conversation
    requires_user_input: bool = True
    terminal: bool = False
    description: str = ""


STATE_METADATA: Dict[ConversationState, StateMetadata] = {
    ConversationState.WAITING_FOR_IMAGE: StateMetadata(
        name=ConversationState.WAITING_FOR_IMAGE,
        display_name="Send an image",
        description="Entry point - waiting for the user to send a JPEG/PNG"
    ),
    ConversationState.WAITING_FOR_EDIT_PROMPT: StateMetadata(
        name=ConversationState.WAITING_FOR_EDIT_PROMPT,
        display_name="Describe the edit",
        description="Image stored; waiting for an edit instruction"
    ),
    ConversationState.PROCESSING_EDIT: StateMetadata(
        name=ConversationState.PROCESSING_EDIT,
        display_name="Editing image",
        in_progress=True,
        requires_user_input=False,
        description="Image edit job submitted and being polled"
    ),
    ConversationState.WAITING_FOR_VIDEO_DECISION: StateMetadata(
        name=ConversationState.WAITING_FOR_VIDEO_DECISION,
        display_name="Video or another edit?",
        description="Edited image delivered; user chooses next step"
    ),
    ConversationState.WAITING_FOR_VIDEO_PROMPT: StateMetadata(
        name=ConversationState.WAITING_FOR_VIDEO_PROMPT,
        display_name="Describe the animation",
        description="Waiting for the animation description"
    ),
    ConversationState.GENERATING_VIDEO: StateMetadata(
        name=ConversationState.GENERATING_VIDEO,
        display_name="Generating video",
        in_progress=True,
        requires_user_input=False,
        description="Video generation operation submitted and being polled"
    ),
    ConversationState.COMPLETED: StateMetadata(
        name=ConversationState.COMPLETED,
        display_name="Completed",
        requires_user_input=False,
        terminal=True,
        description="Video delivered"
    ),
    ConversationState.FAILED: StateMetadata(
        name=ConversationState.FAILED,
        display_name="Failed",
        requires_user_input=False,
        terminal=True,
        description="Job failed; user is notified and the conversation resets"
    ),
}


# Every state may jump to WAITING_FOR_EDIT_PROMPT (new image) and
# WAITING_FOR_IMAGE (reset), so those are implied for all sources.
_ALWAYS_ALLOWED: FrozenSet[ConversationState] = frozenset({
    ConversationState.WAITING_FOR_EDIT_PROMPT,
    ConversationState.WAITING_FOR_IMAGE,
})

STATE_TRANSITIONS: Dict[ConversationState, FrozenSet[ConversationState]] = {
    ConversationState.WAITING_FOR_IMAGE: frozenset(),
    ConversationState.WAITING_FOR_EDIT_PROMPT: frozenset({
        ConversationState.PROCESSING_EDIT,
    }),
    ConversationState.PROCESSING_EDIT: frozenset({
        ConversationState.WAITING_FOR_VIDEO_DECISION,
    }),
    ConversationState.WAITING_FOR_VIDEO_DECISION: frozenset({
        ConversationState.WAITING_FOR_VIDEO_PROMPT,
    }),
    ConversationState.WAITING_FOR_VIDEO_PROMPT: frozenset({
        ConversationState.GENERATING_VIDEO,
    }),
    ConversationState.GENERATING_VIDEO: frozenset({
        ConversationState.COMPLETED,
        ConversationState.FAILED,
    }),
    ConversationState.COMPLETED: frozenset(),
    ConversationState.FAILED: frozenset(),
}

IN_PROGRESS_STATES: FrozenSet[ConversationState] = frozenset(
    state for state, meta in STATE_METADATA.items() if meta.in_progress
)


def parse_state(value: Optional[str]) -> Optional[ConversationState]:
    """
    Converts a persisted value to a ConversationState.

    Returns:
        The state, or None if the value is not a known state
    """
    try:
        return ConversationState(value)
    except ValueError:
        return None


def is_valid_transition(from_state: ConversationState, to_state: ConversationState) -> bool:
    """
    Checks if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is allowed, False otherwise
    """
    if to_state in _ALWAYS_ALLOWED:
        return True
    return to_state in STATE_TRANSITIONS.get(from_state, frozenset())


def get_state_metadata(state: ConversationState) -> StateMetadata:
    """
    Retrieves metadata for a given state.
    """
    return STATE_METADATA[state]


def is_in_progress(state: Optional[ConversationState]) -> bool:
    return state in IN_PROGRESS_STATES
