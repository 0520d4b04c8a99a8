"""Application state machine.

Every permitted ``(state, action)`` pair is listed in ``TRANSITIONS`` together
with the target state and the ordered side effects the caller must carry out.
Pairs missing from the table are rejected.
"""
from dataclasses import dataclass
from enum import Enum

from applyhub.constants import ApplicationState
from applyhub.exceptions import OperationNotAllowedError


class Action(str, Enum):
    EDIT = "EDIT"
    SUBMIT = "SUBMIT"
    RESEND = "RESEND"
    WITHDRAW = "WITHDRAW"
    DELETE = "DELETE"


class Effect(str, Enum):
    STAMP_APPLIED_AT = "STAMP_APPLIED_AT"
    SYNC_PROFILE_FIELDS = "SYNC_PROFILE_FIELDS"
    SYNC_PROFILE_DOCUMENTS = "SYNC_PROFILE_DOCUMENTS"
    NOTIFY_SENT = "NOTIFY_SENT"
    NOTIFY_RECEIVED = "NOTIFY_RECEIVED"
    NOTIFY_WITHDRAWN = "NOTIFY_WITHDRAWN"
    REMOVE = "REMOVE"


NOTIFY_EFFECTS = frozenset({Effect.NOTIFY_SENT, Effect.NOTIFY_RECEIVED, Effect.NOTIFY_WITHDRAWN})


@dataclass(frozen=True)
class Transition:
    target: ApplicationState | None
    effects: tuple[Effect, ...] = ()

    @property
    def state_effects(self) -> tuple[Effect, ...]:
        return tuple(e for e in self.effects if e not in NOTIFY_EFFECTS)

    @property
    def notifications(self) -> tuple[Effect, ...]:
        return tuple(e for e in self.effects if e in NOTIFY_EFFECTS)


S = ApplicationState

TRANSITIONS: dict[tuple[ApplicationState, Action], Transition] = {
    (S.SAVED, Action.EDIT): Transition(S.SAVED),
    (S.SAVED, Action.SUBMIT): Transition(
        S.SENT,
        (
            Effect.STAMP_APPLIED_AT,
            Effect.SYNC_PROFILE_FIELDS,
            Effect.SYNC_PROFILE_DOCUMENTS,
            Effect.NOTIFY_SENT,
            Effect.NOTIFY_RECEIVED,
        ),
    ),
    (S.SAVED, Action.WITHDRAW): Transition(S.WITHDRAWN, (Effect.NOTIFY_WITHDRAWN,)),
    (S.SAVED, Action.DELETE): Transition(None, (Effect.REMOVE,)),
    (S.SENT, Action.RESEND): Transition(S.SENT),
    (S.SENT, Action.WITHDRAW): Transition(S.WITHDRAWN, (Effect.NOTIFY_WITHDRAWN,)),
    (S.SENT, Action.DELETE): Transition(None, (Effect.REMOVE,)),
    (S.IN_REVIEW, Action.WITHDRAW): Transition(S.WITHDRAWN, (Effect.NOTIFY_WITHDRAWN,)),
    (S.WITHDRAWN, Action.DELETE): Transition(None, (Effect.REMOVE,)),
}

# States an applicant may request through an update.
_UPDATE_ACTIONS = {
    S.SAVED: Action.EDIT,
    S.SENT: Action.SUBMIT,
    S.WITHDRAWN: Action.WITHDRAW,
}


def resolve(state: ApplicationState | str, action: Action) -> Transition:
    current = ApplicationState(state)
    transition = TRANSITIONS.get((current, action))
    if transition is None:
        raise OperationNotAllowedError(
            f"Cannot {action.value.lower()} an application in state {current.value}"
        )
    return transition


def action_for_update(current: ApplicationState | str, requested: ApplicationState | str | None) -> Action:
    """Translate the state carried by an update request into an action."""
    current = ApplicationState(current)
    requested = current if requested is None else ApplicationState(requested)
    if requested == S.SENT and current == S.SENT:
        return Action.RESEND
    action = _UPDATE_ACTIONS.get(requested)
    if action is None:
        raise OperationNotAllowedError(f"State {requested.value} cannot be set by the applicant")
    return action


def is_editable(state: ApplicationState | str) -> bool:
    return (ApplicationState(state), Action.EDIT) in TRANSITIONS
