"""Actions accepted by the user state reducer.

Each action is a small frozen dataclass tagged with an :class:`ActionKind`.
External ``{"kind": ..., "payload": ...}`` records are parsed with
:func:`action_from_dict`; the creator functions mirror the names the host
application dispatches.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Type

from .schemas import ChainId, SerializedPair, SerializedToken, parse_chain_id


class ActionKind(str, Enum):
    """Tags of the supported state transitions."""

    CHECK_VERSION = "CheckVersion"
    SET_DARK_MODE_PREFERENCE = "SetDarkModePreference"
    SET_SYSTEM_DARK_MODE = "SetSystemDarkMode"
    SET_EXPERT_MODE = "SetExpertMode"
    SET_SLIPPAGE_TOLERANCE = "SetSlippageTolerance"
    SET_DEADLINE = "SetDeadline"
    ADD_TOKEN = "AddToken"
    REMOVE_TOKEN = "RemoveToken"
    DISMISS_TOKEN_WARNING = "DismissTokenWarning"
    ADD_PAIR = "AddPair"
    REMOVE_PAIR = "RemovePair"


class Action:
    """Base class for reducer actions."""

    kind: ClassVar[ActionKind]

    def payload(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "payload": self.payload()}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Action":
        return cls()


def _field(payload: Mapping[str, Any], key: str, kind: ActionKind) -> Any:
    if key not in payload:
        raise ValueError(f"{kind.value} payload is missing required field '{key}'")
    return payload[key]


def _flag(payload: Mapping[str, Any], key: str, kind: ActionKind) -> bool:
    value = _field(payload, key, kind)
    if not isinstance(value, bool):
        raise ValueError(f"{kind.value} expects a boolean '{key}', got {value!r}")
    return value


def _text(payload: Mapping[str, Any], key: str, kind: ActionKind) -> str:
    value = _field(payload, key, kind)
    if not isinstance(value, str):
        raise ValueError(f"{kind.value} expects a string '{key}', got {value!r}")
    return value


def _integer(payload: Mapping[str, Any], key: str, kind: ActionKind) -> int:
    value = _field(payload, key, kind)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{kind.value} expects an integer '{key}', got {value!r}")
    return value


@dataclass(frozen=True)
class CheckVersion(Action):
    kind: ClassVar[ActionKind] = ActionKind.CHECK_VERSION


@dataclass(frozen=True)
class SetDarkModePreference(Action):
    kind: ClassVar[ActionKind] = ActionKind.SET_DARK_MODE_PREFERENCE

    user_dark_mode: Optional[bool]

    def payload(self) -> Dict[str, Any]:
        return {"userDarkMode": self.user_dark_mode}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SetDarkModePreference":
        value = _field(payload, "userDarkMode", cls.kind)
        if value is not None and not isinstance(value, bool):
            raise ValueError(f"{cls.kind.value} expects a boolean or null 'userDarkMode', got {value!r}")
        return cls(user_dark_mode=value)


@dataclass(frozen=True)
class SetSystemDarkMode(Action):
    kind: ClassVar[ActionKind] = ActionKind.SET_SYSTEM_DARK_MODE

    matches_dark_mode: bool

    def payload(self) -> Dict[str, Any]:
        return {"matchesDarkMode": self.matches_dark_mode}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SetSystemDarkMode":
        return cls(matches_dark_mode=_flag(payload, "matchesDarkMode", cls.kind))


@dataclass(frozen=True)
class SetExpertMode(Action):
    kind: ClassVar[ActionKind] = ActionKind.SET_EXPERT_MODE

    user_expert_mode: bool

    def payload(self) -> Dict[str, Any]:
        return {"userExpertMode": self.user_expert_mode}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SetExpertMode":
        return cls(user_expert_mode=_flag(payload, "userExpertMode", cls.kind))


@dataclass(frozen=True)
class SetSlippageTolerance(Action):
    kind: ClassVar[ActionKind] = ActionKind.SET_SLIPPAGE_TOLERANCE

    user_slippage_tolerance: int

    def payload(self) -> Dict[str, Any]:
        return {"userSlippageTolerance": self.user_slippage_tolerance}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SetSlippageTolerance":
        return cls(user_slippage_tolerance=_integer(payload, "userSlippageTolerance", cls.kind))


@dataclass(frozen=True)
class SetDeadline(Action):
    kind: ClassVar[ActionKind] = ActionKind.SET_DEADLINE

    user_deadline: int

    def payload(self) -> Dict[str, Any]:
        return {"userDeadline": self.user_deadline}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SetDeadline":
        return cls(user_deadline=_integer(payload, "userDeadline", cls.kind))


@dataclass(frozen=True)
class AddToken(Action):
    kind: ClassVar[ActionKind] = ActionKind.ADD_TOKEN

    token: SerializedToken

    def payload(self) -> Dict[str, Any]:
        return {"serializedToken": self.token.to_dict()}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AddToken":
        return cls(token=SerializedToken.from_dict(_field(payload, "serializedToken", cls.kind)))


@dataclass(frozen=True)
class RemoveToken(Action):
    kind: ClassVar[ActionKind] = ActionKind.REMOVE_TOKEN

    chain_id: ChainId
    address: str

    def payload(self) -> Dict[str, Any]:
        return {"chainId": self.chain_id, "address": self.address}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RemoveToken":
        return cls(
            chain_id=parse_chain_id(_field(payload, "chainId", cls.kind)),
            address=_text(payload, "address", cls.kind),
        )


@dataclass(frozen=True)
class DismissTokenWarning(Action):
    kind: ClassVar[ActionKind] = ActionKind.DISMISS_TOKEN_WARNING

    chain_id: ChainId
    token_address: str

    def payload(self) -> Dict[str, Any]:
        return {"chainId": self.chain_id, "tokenAddress": self.token_address}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DismissTokenWarning":
        return cls(
            chain_id=parse_chain_id(_field(payload, "chainId", cls.kind)),
            token_address=_text(payload, "tokenAddress", cls.kind),
        )


@dataclass(frozen=True)
class AddPair(Action):
    kind: ClassVar[ActionKind] = ActionKind.ADD_PAIR

    pair: SerializedPair

    def payload(self) -> Dict[str, Any]:
        return {"serializedPair": self.pair.to_dict()}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AddPair":
        return cls(pair=SerializedPair.from_dict(_field(payload, "serializedPair", cls.kind)))


@dataclass(frozen=True)
class RemovePair(Action):
    kind: ClassVar[ActionKind] = ActionKind.REMOVE_PAIR

    chain_id: ChainId
    token_a_address: str
    token_b_address: str

    def payload(self) -> Dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "tokenAAddress": self.token_a_address,
            "tokenBAddress": self.token_b_address,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RemovePair":
        return cls(
            chain_id=parse_chain_id(_field(payload, "chainId", cls.kind)),
            token_a_address=_text(payload, "tokenAAddress", cls.kind),
            token_b_address=_text(payload, "tokenBAddress", cls.kind),
        )


ACTION_TYPES: Dict[ActionKind, Type[Action]] = {
    action_type.kind: action_type
    for action_type in (
        CheckVersion,
        SetDarkModePreference,
        SetSystemDarkMode,
        SetExpertMode,
        SetSlippageTolerance,
        SetDeadline,
        AddToken,
        RemoveToken,
        DismissTokenWarning,
        AddPair,
        RemovePair,
    )
}


def action_from_dict(record: Mapping[str, Any]) -> Action:
    """Parse an external ``{"kind", "payload"}`` record into an action."""

    if not isinstance(record, Mapping) or "kind" not in record:
        raise ValueError("Action record must be a mapping with a 'kind' field")
    raw_kind = record["kind"]
    try:
        kind = ActionKind(raw_kind)
    except ValueError as exc:
        valid = sorted(item.value for item in ActionKind)
        raise ValueError(f"Unsupported action kind '{raw_kind}'. Valid options: {valid}") from exc
    payload = record.get("payload") or {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"{kind.value} payload must be a mapping")
    return ACTION_TYPES[kind].from_payload(payload)


# Action creators


def update_version() -> CheckVersion:
    return CheckVersion()


def update_user_dark_mode(user_dark_mode: Optional[bool]) -> SetDarkModePreference:
    return SetDarkModePreference(user_dark_mode=user_dark_mode)


def update_matches_dark_mode(matches_dark_mode: bool) -> SetSystemDarkMode:
    return SetSystemDarkMode(matches_dark_mode=matches_dark_mode)


def update_user_expert_mode(user_expert_mode: bool) -> SetExpertMode:
    return SetExpertMode(user_expert_mode=user_expert_mode)


def update_user_slippage_tolerance(user_slippage_tolerance: int) -> SetSlippageTolerance:
    return SetSlippageTolerance(user_slippage_tolerance=user_slippage_tolerance)


def update_user_deadline(user_deadline: int) -> SetDeadline:
    return SetDeadline(user_deadline=user_deadline)


def add_serialized_token(token: SerializedToken) -> AddToken:
    return AddToken(token=token)


def remove_serialized_token(chain_id: ChainId, address: str) -> RemoveToken:
    return RemoveToken(chain_id=chain_id, address=address)


def dismiss_token_warning(chain_id: ChainId, token_address: str) -> DismissTokenWarning:
    return DismissTokenWarning(chain_id=chain_id, token_address=token_address)


def add_serialized_pair(pair: SerializedPair) -> AddPair:
    return AddPair(pair=pair)


def remove_serialized_pair(chain_id: ChainId, token_a_address: str, token_b_address: str) -> RemovePair:
    return RemovePair(chain_id=chain_id, token_a_address=token_a_address, token_b_address=token_b_address)


__all__ = [
    "ACTION_TYPES",
    "Action",
    "ActionKind",
    "AddPair",
    "AddToken",
    "CheckVersion",
    "DismissTokenWarning",
    "RemovePair",
    "RemoveToken",
    "SetDarkModePreference",
    "SetDeadline",
    "SetExpertMode",
    "SetSlippageTolerance",
    "SetSystemDarkMode",
    "action_from_dict",
    "add_serialized_pair",
    "add_serialized_token",
    "dismiss_token_warning",
    "remove_serialized_pair",
    "remove_serialized_token",
    "update_matches_dark_mode",
    "update_user_dark_mode",
    "update_user_deadline",
    "update_user_expert_mode",
    "update_user_slippage_tolerance",
    "update_version",
]
