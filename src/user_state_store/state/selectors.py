"""Read helpers over a :class:`UserState` snapshot."""

from __future__ import annotations

from typing import List

from .schemas import ChainId, SerializedPair, SerializedToken, UserState


def user_added_tokens(state: UserState, chain_id: ChainId) -> List[SerializedToken]:
    return list(state.tokens.get(chain_id, {}).values())


def user_pairs(state: UserState, chain_id: ChainId) -> List[SerializedPair]:
    return list(state.pairs.get(chain_id, {}).values())


def is_token_warning_dismissed(state: UserState, chain_id: ChainId, token_address: str) -> bool:
    if not state.dismissed_token_warnings:
        return False
    return bool(state.dismissed_token_warnings.get(chain_id, {}).get(token_address, False))


def is_dark_mode(state: UserState) -> bool:
    """Explicit user choice, or the system preference when the user has not chosen."""
    if state.user_dark_mode is None:
        return state.matches_dark_mode
    return state.user_dark_mode


__all__ = ["is_dark_mode", "is_token_warning_dismissed", "user_added_tokens", "user_pairs"]
