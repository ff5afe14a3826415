from __future__ import annotations

import itertools
from dataclasses import replace

import pytest

from user_state_store.config.settings import AppConfig, BuildConfig, PreferenceDefaultsConfig
from user_state_store.state import actions
from user_state_store.state.reducer import UserStateReducer, default_user_state, reduce
from user_state_store.state.schemas import SerializedPair, SerializedToken, UserState, pair_key

BUILD_ID = "4f2c9ab"


def _token(address: str, chain_id: int = 1, symbol: str | None = None) -> SerializedToken:
    return SerializedToken(chain_id=chain_id, address=address, decimals=18, symbol=symbol)


def _pair(a: SerializedToken, b: SerializedToken) -> SerializedPair:
    return SerializedPair(token0=a, token1=b)


@pytest.fixture
def defaults() -> PreferenceDefaultsConfig:
    return PreferenceDefaultsConfig(initial_allowed_slippage=50, default_deadline_from_now=20)


@pytest.fixture
def reducer(defaults: PreferenceDefaultsConfig) -> UserStateReducer:
    ticks = itertools.count(1_000)
    return UserStateReducer(defaults, BUILD_ID, clock=lambda: next(ticks))


@pytest.fixture
def state(defaults: PreferenceDefaultsConfig) -> UserState:
    return default_user_state(defaults, timestamp=0)


def test_default_state_uses_configured_preferences(state: UserState) -> None:
    assert state.last_version == ""
    assert state.user_dark_mode is None
    assert state.matches_dark_mode is False
    assert state.user_expert_mode is False
    assert state.user_slippage_tolerance == 50
    assert state.user_deadline == 20
    assert state.tokens == {}
    assert state.pairs == {}
    assert state.dismissed_token_warnings is None


def test_re_adding_a_token_keeps_registry_content_but_advances_timestamp(
    reducer: UserStateReducer, state: UserState
) -> None:
    token = _token("0xA", symbol="AAA")
    once = reducer(state, actions.add_serialized_token(token))
    twice = reducer(once, actions.add_serialized_token(token))

    assert once.tokens == twice.tokens == {1: {"0xA": token}}
    assert twice.timestamp > once.timestamp > state.timestamp


def test_add_token_overwrites_existing_descriptor(reducer: UserStateReducer, state: UserState) -> None:
    original = _token("0xA", symbol="OLD")
    updated = _token("0xA", symbol="NEW")
    result = reducer(reducer(state, actions.add_serialized_token(original)), actions.add_serialized_token(updated))
    assert result.tokens[1]["0xA"].symbol == "NEW"


def test_tokens_are_scoped_by_network(reducer: UserStateReducer, state: UserState) -> None:
    result = reducer(state, actions.add_serialized_token(_token("0xA", chain_id=1)))
    result = reducer(result, actions.add_serialized_token(_token("0xA", chain_id=4)))
    assert set(result.tokens) == {1, 4}
    assert list(result.tokens[4]) == ["0xA"]


def test_remove_token_on_unknown_network_is_a_no_op(reducer: UserStateReducer, state: UserState) -> None:
    result = reducer(state, actions.remove_serialized_token(42, "0xMissing"))
    assert result.tokens == {42: {}}
    assert result.timestamp > state.timestamp


def test_remove_token_deletes_entry(reducer: UserStateReducer, state: UserState) -> None:
    with_token = reducer(state, actions.add_serialized_token(_token("0xA")))
    result = reducer(with_token, actions.remove_serialized_token(1, "0xA"))
    assert result.tokens == {1: {}}
    assert with_token.tokens == {1: {"0xA": _token("0xA")}}


@pytest.mark.parametrize("remove_order", [("0xA", "0xB"), ("0xB", "0xA")])
def test_remove_pair_works_for_either_address_order(
    reducer: UserStateReducer, state: UserState, remove_order: tuple[str, str]
) -> None:
    added = reducer(state, actions.add_serialized_pair(_pair(_token("0xA"), _token("0xB"))))
    assert list(added.pairs[1]) == ["0xA;0xB"]

    result = reducer(added, actions.remove_serialized_pair(1, *remove_order))
    assert result.pairs[1] == {}


def test_pair_key_keeps_caller_order(reducer: UserStateReducer, state: UserState) -> None:
    result = reducer(state, actions.add_serialized_pair(_pair(_token("0xB"), _token("0xA"))))
    assert list(result.pairs[1]) == [pair_key("0xB", "0xA")] == ["0xB;0xA"]


def test_self_pair_is_rejected(reducer: UserStateReducer, state: UserState) -> None:
    result = reducer(state, actions.add_serialized_pair(_pair(_token("0xA"), _token("0xA"))))
    assert result.pairs == {}
    assert result.timestamp > state.timestamp


def test_cross_network_pair_is_rejected(reducer: UserStateReducer, state: UserState) -> None:
    result = reducer(state, actions.add_serialized_pair(_pair(_token("0xA", chain_id=1), _token("0xB", chain_id=3))))
    assert result.pairs == {}
    assert result.timestamp > state.timestamp


def test_remove_pair_without_network_map_only_refreshes_timestamp(
    reducer: UserStateReducer, state: UserState
) -> None:
    result = reducer(state, actions.remove_serialized_pair(1, "0xA", "0xB"))
    assert result.pairs == {}
    assert replace(result, timestamp=state.timestamp) == state


def test_version_change_repairs_malformed_preferences(reducer: UserStateReducer, state: UserState) -> None:
    stale = replace(state, last_version="0000000", user_slippage_tolerance="0.5", user_deadline=None)
    result = reducer(stale, actions.update_version())

    assert result.last_version == BUILD_ID
    assert result.user_slippage_tolerance == 50
    assert result.user_deadline == 20
    assert result.timestamp > stale.timestamp


def test_version_change_keeps_numeric_preferences(reducer: UserStateReducer, state: UserState) -> None:
    stale = replace(state, last_version="0000000", user_slippage_tolerance=120, user_deadline=45)
    result = reducer(stale, actions.update_version())
    assert result.last_version == BUILD_ID
    assert result.user_slippage_tolerance == 120
    assert result.user_deadline == 45


def test_boolean_slippage_counts_as_malformed(reducer: UserStateReducer, state: UserState) -> None:
    stale = replace(state, user_slippage_tolerance=True)
    assert reducer(stale, actions.update_version()).user_slippage_tolerance == 50


def test_matching_version_only_refreshes_timestamp(reducer: UserStateReducer, state: UserState) -> None:
    current = replace(state, last_version=BUILD_ID, user_slippage_tolerance="broken")
    result = reducer(current, actions.update_version())

    assert result.timestamp > current.timestamp
    assert replace(result, timestamp=current.timestamp) == current


def test_missing_build_id_only_refreshes_timestamp(defaults: PreferenceDefaultsConfig, state: UserState) -> None:
    reducer = UserStateReducer(defaults, None, clock=lambda: 99)
    stale = replace(state, last_version="old", user_deadline="x")
    result = reducer(stale, actions.update_version())
    assert result == replace(stale, timestamp=99)


def test_dismissal_sets_flag_without_touching_timestamp(reducer: UserStateReducer, state: UserState) -> None:
    result = reducer(state, actions.dismiss_token_warning(1, "0xA"))
    assert result.dismissed_token_warnings == {1: {"0xA": True}}
    assert result.timestamp == state.timestamp

    again = reducer(result, actions.dismiss_token_warning(3, "0xB"))
    assert again.dismissed_token_warnings == {1: {"0xA": True}, 3: {"0xB": True}}
    assert again.timestamp == state.timestamp


@pytest.mark.parametrize(
    ("action", "field_name", "expected"),
    [
        (actions.update_user_dark_mode(True), "user_dark_mode", True),
        (actions.update_user_dark_mode(None), "user_dark_mode", None),
        (actions.update_matches_dark_mode(True), "matches_dark_mode", True),
        (actions.update_user_expert_mode(True), "user_expert_mode", True),
        (actions.update_user_slippage_tolerance(300), "user_slippage_tolerance", 300),
        (actions.update_user_deadline(5), "user_deadline", 5),
    ],
)
def test_preference_transitions_replace_one_field(
    reducer: UserStateReducer, state: UserState, action: actions.Action, field_name: str, expected: object
) -> None:
    result = reducer(state, action)
    assert getattr(result, field_name) == expected
    assert result.timestamp > state.timestamp
    assert replace(result, **{field_name: getattr(state, field_name), "timestamp": state.timestamp}) == state


def test_preference_values_are_not_range_checked(reducer: UserStateReducer, state: UserState) -> None:
    result = reducer(state, actions.update_user_slippage_tolerance(-10))
    assert result.user_slippage_tolerance == -10


def test_previous_snapshot_is_never_mutated(reducer: UserStateReducer, state: UserState) -> None:
    first = reducer(state, actions.add_serialized_token(_token("0xA")))
    first = reducer(first, actions.add_serialized_pair(_pair(_token("0xA"), _token("0xB"))))
    first = reducer(first, actions.dismiss_token_warning(1, "0xA"))
    tokens_before = {chain: dict(items) for chain, items in first.tokens.items()}
    pairs_before = {chain: dict(items) for chain, items in first.pairs.items()}

    second = reducer(first, actions.add_serialized_token(_token("0xC")))
    second = reducer(second, actions.remove_serialized_pair(1, "0xB", "0xA"))
    second = reducer(second, actions.dismiss_token_warning(1, "0xC"))

    assert first.tokens == tokens_before
    assert first.pairs == pairs_before
    assert first.dismissed_token_warnings == {1: {"0xA": True}}
    assert second.tokens[1].keys() == {"0xA", "0xC"}
    assert second.pairs[1] == {}


def test_unknown_action_returns_same_state(reducer: UserStateReducer, state: UserState) -> None:
    class Unrelated:
        kind = "Unrelated"

    assert reducer(state, Unrelated()) is state  # type: ignore[arg-type]


def test_add_then_remove_pair_scenario(reducer: UserStateReducer, state: UserState) -> None:
    token_a = _token("0xA")
    token_b = _token("0xB")
    current = reducer(state, actions.add_serialized_token(token_a))
    current = reducer(current, actions.add_serialized_token(token_b))
    current = reducer(current, actions.add_serialized_pair(_pair(token_a, token_b)))

    assert current.pairs[1] == {"0xA;0xB": _pair(token_a, token_b)}

    current = reducer(current, actions.remove_serialized_pair(1, "0xB", "0xA"))
    assert current.pairs[1] == {}
    assert current.tokens[1].keys() == {"0xA", "0xB"}


def test_module_level_reduce_reads_build_id_from_config(state: UserState) -> None:
    config = AppConfig(build=BuildConfig(git_commit_hash="cfg-build"))
    result = reduce(replace(state, user_deadline="?"), actions.update_version(), config=config)
    assert result.last_version == "cfg-build"
    assert result.user_deadline == config.preferences.default_deadline_from_now
