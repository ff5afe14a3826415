"""State transitions for user preferences and the token/pair registries.

The reducer is a pure function of ``(state, action)``: it never mutates the
incoming snapshot. Nested registry maps touched by a transition are copied,
untouched ones are shared with the previous snapshot.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Mapping, Optional, Tuple, TypeVar

from ..config.settings import AppConfig, PreferenceDefaultsConfig, get_app_config
from ..monitoring.logger import get_logger
from ..utils.constants import current_timestamp, is_number
from .actions import (
    Action,
    ActionKind,
    AddPair,
    AddToken,
    DismissTokenWarning,
    RemovePair,
    RemoveToken,
    SetDarkModePreference,
    SetDeadline,
    SetExpertMode,
    SetSlippageTolerance,
    SetSystemDarkMode,
)
from .schemas import ChainId, UserState, pair_key

Clock = Callable[[], int]
V = TypeVar("V")


def _copy_network(
    registry: Mapping[ChainId, Mapping[str, V]], chain_id: ChainId
) -> Tuple[Dict[ChainId, Dict[str, V]], Dict[str, V]]:
    """Get-or-create the map for ``chain_id`` on a fresh copy of ``registry``.

    Returns the copied outer map and the (new) inner map it now holds.
    """

    outer: Dict[ChainId, Dict[str, V]] = dict(registry)  # type: ignore[arg-type]
    inner: Dict[str, V] = dict(registry.get(chain_id, {}))
    outer[chain_id] = inner
    return outer, inner


def default_user_state(
    defaults: Optional[PreferenceDefaultsConfig] = None, *, timestamp: Optional[int] = None
) -> UserState:
    """State used on first start when no snapshot was restored."""

    prefs = defaults or get_app_config().preferences
    return UserState(
        user_slippage_tolerance=prefs.initial_allowed_slippage,
        user_deadline=prefs.default_deadline_from_now,
        timestamp=current_timestamp() if timestamp is None else timestamp,
    )


class UserStateReducer:
    """Applies exactly one transition rule per action."""

    def __init__(
        self,
        defaults: Optional[PreferenceDefaultsConfig] = None,
        build_id: Optional[str] = None,
        *,
        clock: Clock = current_timestamp,
    ) -> None:
        self._defaults = defaults or PreferenceDefaultsConfig()
        self._build_id = build_id
        self._clock = clock
        self._logger = get_logger(__name__)
        self._handlers: Dict[ActionKind, Callable[[UserState, Action], UserState]] = {
            ActionKind.CHECK_VERSION: self._check_version,
            ActionKind.SET_DARK_MODE_PREFERENCE: self._set_dark_mode_preference,
            ActionKind.SET_SYSTEM_DARK_MODE: self._set_system_dark_mode,
            ActionKind.SET_EXPERT_MODE: self._set_expert_mode,
            ActionKind.SET_SLIPPAGE_TOLERANCE: self._set_slippage_tolerance,
            ActionKind.SET_DEADLINE: self._set_deadline,
            ActionKind.ADD_TOKEN: self._add_token,
            ActionKind.REMOVE_TOKEN: self._remove_token,
            ActionKind.DISMISS_TOKEN_WARNING: self._dismiss_token_warning,
            ActionKind.ADD_PAIR: self._add_pair,
            ActionKind.REMOVE_PAIR: self._remove_pair,
        }

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None, *, clock: Clock = current_timestamp) -> "UserStateReducer":
        cfg = config or get_app_config()
        return cls(cfg.preferences, cfg.build.git_commit_hash, clock=clock)

    @property
    def build_id(self) -> Optional[str]:
        return self._build_id

    def initial_state(self) -> UserState:
        return default_user_state(self._defaults, timestamp=self._clock())

    def __call__(self, state: UserState, action: Action) -> UserState:
        handler = self._handlers.get(getattr(action, "kind", None))
        if handler is None:
            return state
        return handler(state, action)

    # Version guard

    def _check_version(self, state: UserState, action: Action) -> UserState:
        build_id = self._build_id
        if not build_id or state.last_version == build_id:
            return replace(state, timestamp=self._clock())

        changes: Dict[str, object] = {"last_version": build_id}
        # Snapshots from older builds may not carry these fields at all.
        if not is_number(state.user_slippage_tolerance):
            changes["user_slippage_tolerance"] = self._defaults.initial_allowed_slippage
        if not is_number(state.user_deadline):
            changes["user_deadline"] = self._defaults.default_deadline_from_now
        self._logger.info(
            "Reconciled user state from version %r to %r",
            state.last_version,
            build_id,
            extra={"repaired_fields": sorted(key for key in changes if key != "last_version")},
        )
        return replace(state, timestamp=self._clock(), **changes)

    # Preferences

    def _set_dark_mode_preference(self, state: UserState, action: SetDarkModePreference) -> UserState:
        return replace(state, user_dark_mode=action.user_dark_mode, timestamp=self._clock())

    def _set_system_dark_mode(self, state: UserState, action: SetSystemDarkMode) -> UserState:
        return replace(state, matches_dark_mode=action.matches_dark_mode, timestamp=self._clock())

    def _set_expert_mode(self, state: UserState, action: SetExpertMode) -> UserState:
        return replace(state, user_expert_mode=action.user_expert_mode, timestamp=self._clock())

    def _set_slippage_tolerance(self, state: UserState, action: SetSlippageTolerance) -> UserState:
        return replace(state, user_slippage_tolerance=action.user_slippage_tolerance, timestamp=self._clock())

    def _set_deadline(self, state: UserState, action: SetDeadline) -> UserState:
        return replace(state, user_deadline=action.user_deadline, timestamp=self._clock())

    # Token registry

    def _add_token(self, state: UserState, action: AddToken) -> UserState:
        token = action.token
        tokens, by_address = _copy_network(state.tokens, token.chain_id)
        by_address[token.address] = token
        return replace(state, tokens=tokens, timestamp=self._clock())

    def _remove_token(self, state: UserState, action: RemoveToken) -> UserState:
        tokens, by_address = _copy_network(state.tokens, action.chain_id)
        by_address.pop(action.address, None)
        return replace(state, tokens=tokens, timestamp=self._clock())

    # Warning dismissals

    def _dismiss_token_warning(self, state: UserState, action: DismissTokenWarning) -> UserState:
        dismissed, flags = _copy_network(state.dismissed_token_warnings or {}, action.chain_id)
        flags[action.token_address] = True
        # Dismissals do not refresh the timestamp.
        return replace(state, dismissed_token_warnings=dismissed)

    # Pair registry

    def _add_pair(self, state: UserState, action: AddPair) -> UserState:
        token0, token1 = action.pair.token0, action.pair.token1
        if token0.chain_id != token1.chain_id or token0.address == token1.address:
            self._logger.debug(
                "Ignoring invalid pair %s/%s on chains %s/%s",
                token0.address,
                token1.address,
                token0.chain_id,
                token1.chain_id,
            )
            return replace(state, timestamp=self._clock())

        pairs, by_key = _copy_network(state.pairs, token0.chain_id)
        by_key[pair_key(token0.address, token1.address)] = action.pair
        return replace(state, pairs=pairs, timestamp=self._clock())

    def _remove_pair(self, state: UserState, action: RemovePair) -> UserState:
        if action.chain_id not in state.pairs:
            return replace(state, timestamp=self._clock())
        pairs, by_key = _copy_network(state.pairs, action.chain_id)
        # Keys are stored in caller order, so drop both orderings.
        by_key.pop(pair_key(action.token_a_address, action.token_b_address), None)
        by_key.pop(pair_key(action.token_b_address, action.token_a_address), None)
        return replace(state, pairs=pairs, timestamp=self._clock())


def reduce(state: UserState, action: Action, *, config: Optional[AppConfig] = None) -> UserState:
    """Apply ``action`` to ``state`` using the application configuration."""

    return UserStateReducer.from_config(config)(state, action)


__all__ = ["Clock", "UserStateReducer", "default_user_state", "reduce"]
