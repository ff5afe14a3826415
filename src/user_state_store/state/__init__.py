"""User state: data model, actions, reducer and store."""

from .actions import Action, ActionKind, action_from_dict
from .reducer import UserStateReducer, default_user_state, reduce
from .schemas import SerializedPair, SerializedToken, UserState, pair_key
from .store import UserStateStore

__all__ = [
    "Action",
    "ActionKind",
    "SerializedPair",
    "SerializedToken",
    "UserState",
    "UserStateReducer",
    "UserStateStore",
    "action_from_dict",
    "default_user_state",
    "pair_key",
    "reduce",
]
