# suggested actions for a resolved signal
# plain lookup from signal category to an ordered action set; opening the full
# record is always appended last

from typing import Callable, Optional

from afeia.models.review import ActionType, ClientSnapshot, Signal, SignalCategory, SuggestedAction

ActionFactory = Callable[[str], SuggestedAction]


def _check_in(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.SEND_MESSAGE,
        label="Check in",
        description="Send a message to ask how they are doing",
        template_message=(
            f"Hello {name}, I noticed you haven't shared your journal for a few days. "
            "Is everything going well on your side? I'm here if you need anything."
        ),
        icon_name="MessageSquare",
    )


def _adjust_care_plan(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.ADJUST_CARE_PLAN,
        label="Adjust the care plan",
        description="Simplify or adapt the recommendations",
        icon_name="ClipboardList",
    )


def _propose_adjustment(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.SEND_MESSAGE,
        label="Propose an adjustment",
        description="Talk through the difficulties they are facing",
        template_message=(
            f"Hello {name}, it looks like the new habits have been a bit hard to keep up lately. "
            "How about we adjust your programme together so it fits you better?"
        ),
        icon_name="MessageSquare",
    )


def _supportive_message(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.SEND_MESSAGE,
        label="Send a supportive message",
        description="Offer support and a listening ear",
        template_message=(
            f"Hello {name}, I can see you're going through a harder moment. "
            "Feel free to talk to me about it, I'm here to support you."
        ),
        icon_name="MessageSquare",
    )


def _propose_call(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.SCHEDULE_CALL,
        label="Propose a call",
        description="Schedule a quick phone check-in",
        icon_name="Phone",
    )


def _log_observation(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.NOTE_OBSERVATION,
        label="Log an observation",
        description="Keep a note for the next appointment",
        icon_name="FileEdit",
    )


def _recovery_guidance(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.SEND_MESSAGE,
        label="Share sleep and recovery guidance",
        description="Send advice suited to their recovery",
        template_message=(
            f"Hello {name}, I noticed your sleep and recovery seem disrupted these last few days. "
            "Are you taking time to rest? Let me know if you'd like to talk about it."
        ),
        icon_name="MessageSquare",
    )


def _congratulate(name: str) -> SuggestedAction:
    return SuggestedAction(
        type=ActionType.CELEBRATE,
        label="Send congratulations",
        description="Send an encouraging message",
        template_message=(
            f"Well done {name}! You're keeping a great balance and the new habits are settling in. "
            "Keep it up!"
        ),
        icon_name="PartyPopper",
    )


OPEN_RECORD = SuggestedAction(
    type=ActionType.OPEN_RECORD,
    label="Open the full record",
    description="See the complete client record",
    icon_name="FolderOpen",
)

ACTION_SETS: dict[SignalCategory, tuple[ActionFactory, ...]] = {
    SignalCategory.PRESENCE: (_check_in,),
    SignalCategory.ADHERENCE: (_adjust_care_plan, _propose_adjustment),
    SignalCategory.EMOTIONAL: (_supportive_message, _propose_call),
    SignalCategory.ENERGY: (_supportive_message, _propose_call),
    SignalCategory.SLEEP: (_log_observation, _recovery_guidance),
    SignalCategory.RECOVERY: (_log_observation, _recovery_guidance),
    SignalCategory.PROGRESS: (_congratulate,),
    SignalCategory.BALANCE: (_congratulate,),
}

DEFAULT_TEMPLATE_NAME = "there"


def generate_suggested_actions(
    client: ClientSnapshot,
    signal: Optional[Signal],
) -> tuple[SuggestedAction, ...]:
    """ordered actions for the client's primary signal, open record last"""
    name = client.name or DEFAULT_TEMPLATE_NAME
    factories = ACTION_SETS.get(signal.category, ()) if signal else ()
    return tuple(factory(name) for factory in factories) + (OPEN_RECORD,)
