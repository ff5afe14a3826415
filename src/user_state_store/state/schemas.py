"""Data models for the persisted user state snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..utils.constants import PAIR_KEY_SEPARATOR, current_timestamp

ChainId = int
TokenMap = Dict[ChainId, Dict[str, "SerializedToken"]]
PairMap = Dict[ChainId, Dict[str, "SerializedPair"]]
DismissalMap = Dict[ChainId, Dict[str, bool]]


def pair_key(token0_address: str, token1_address: str) -> str:
    """Registry key for a pair, in the order the caller supplied the tokens."""

    return f"{token0_address}{PAIR_KEY_SEPARATOR}{token1_address}"


def parse_chain_id(raw: Any) -> ChainId:
    if isinstance(raw, bool):
        raise ValueError(f"Invalid chain id: {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid chain id: {raw!r}") from exc


def _mapping(value: Any, context: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{context} must be a mapping, got {type(value).__name__}")
    return value


def _require(payload: Mapping[str, Any], key: str, context: str) -> Any:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{context} must be a mapping, got {type(payload).__name__}")
    if key not in payload:
        raise ValueError(f"{context} is missing required field '{key}'")
    return payload[key]


@dataclass(frozen=True, slots=True)
class SerializedToken:
    """Token descriptor as stored in the registry; opaque beyond chain and address.

    ``decimals``, ``symbol`` and ``name`` are carried as given, so descriptors
    written by older builds survive a restore unchanged.
    """

    chain_id: ChainId
    address: str
    decimals: Any = None
    symbol: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chainId": self.chain_id,
            "address": self.address,
        }
        if self.decimals is not None:
            payload["decimals"] = self.decimals
        if self.symbol is not None:
            payload["symbol"] = self.symbol
        if self.name is not None:
            payload["name"] = self.name
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SerializedToken":
        address = _require(payload, "address", "token")
        if not isinstance(address, str):
            raise ValueError(f"token address must be a string, got {address!r}")
        return cls(
            chain_id=parse_chain_id(_require(payload, "chainId", "token")),
            address=address,
            decimals=payload.get("decimals"),
            symbol=payload.get("symbol"),
            name=payload.get("name"),
        )


@dataclass(frozen=True, slots=True)
class SerializedPair:
    token0: SerializedToken
    token1: SerializedToken

    def to_dict(self) -> Dict[str, Any]:
        return {"token0": self.token0.to_dict(), "token1": self.token1.to_dict()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SerializedPair":
        return cls(
            token0=SerializedToken.from_dict(_require(payload, "token0", "pair")),
            token1=SerializedToken.from_dict(_require(payload, "token1", "pair")),
        )


@dataclass(frozen=True, slots=True)
class UserState:
    """Immutable snapshot of user preferences and per-network registries.

    Snapshots are replaced wholesale by the reducer. The nested mappings are
    plain dicts for cheap JSON conversion; treat them as read-only.

    ``user_slippage_tolerance`` and ``user_deadline`` are typed loosely because
    snapshots restored from an older schema may carry non-numeric values until
    the version check repairs them.
    """

    last_version: str = ""
    user_dark_mode: Optional[bool] = None
    matches_dark_mode: bool = False
    user_expert_mode: bool = False
    user_slippage_tolerance: Any = None
    user_deadline: Any = None
    tokens: TokenMap = field(default_factory=dict)
    dismissed_token_warnings: Optional[DismissalMap] = None
    pairs: PairMap = field(default_factory=dict)
    timestamp: int = field(default_factory=current_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible snapshot using the persisted field names."""

        payload: Dict[str, Any] = {
            "lastVersion": self.last_version,
            "userDarkMode": self.user_dark_mode,
            "matchesDarkMode": self.matches_dark_mode,
            "userExpertMode": self.user_expert_mode,
            "userSlippageTolerance": self.user_slippage_tolerance,
            "userDeadline": self.user_deadline,
            "tokens": {
                str(chain_id): {address: token.to_dict() for address, token in by_address.items()}
                for chain_id, by_address in self.tokens.items()
            },
            "pairs": {
                str(chain_id): {key: pair.to_dict() for key, pair in by_key.items()}
                for chain_id, by_key in self.pairs.items()
            },
            "timestamp": self.timestamp,
        }
        if self.dismissed_token_warnings is not None:
            payload["dismissedTokenWarnings"] = {
                str(chain_id): dict(flags)
                for chain_id, flags in self.dismissed_token_warnings.items()
            }
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UserState":
        """Restore a snapshot written by :meth:`to_dict`.

        Missing preference fields fall back to the empty defaults. Slippage and
        deadline are kept verbatim, including when absent, so the version check
        can repair them. Malformed registry entries raise ``ValueError``.
        """

        if not isinstance(payload, Mapping):
            raise ValueError(f"user state must be a mapping, got {type(payload).__name__}")

        tokens: TokenMap = {}
        for raw_chain, by_address in _mapping(payload.get("tokens"), "tokens").items():
            chain_id = parse_chain_id(raw_chain)
            tokens[chain_id] = {
                str(address): SerializedToken.from_dict(token)
                for address, token in _mapping(by_address, f"tokens[{chain_id}]").items()
            }

        pairs: PairMap = {}
        for raw_chain, by_key in _mapping(payload.get("pairs"), "pairs").items():
            chain_id = parse_chain_id(raw_chain)
            pairs[chain_id] = {
                str(key): SerializedPair.from_dict(pair)
                for key, pair in _mapping(by_key, f"pairs[{chain_id}]").items()
            }

        dismissed: Optional[DismissalMap] = None
        raw_dismissed = payload.get("dismissedTokenWarnings")
        if raw_dismissed is not None:
            dismissed = {}
            for raw_chain, flags in _mapping(raw_dismissed, "dismissedTokenWarnings").items():
                chain_id = parse_chain_id(raw_chain)
                dismissed[chain_id] = {
                    str(address): True
                    for address, flag in _mapping(flags, f"dismissedTokenWarnings[{chain_id}]").items()
                    if flag
                }

        timestamp = payload.get("timestamp")
        return cls(
            last_version=str(payload.get("lastVersion") or ""),
            user_dark_mode=payload.get("userDarkMode"),
            matches_dark_mode=bool(payload.get("matchesDarkMode", False)),
            user_expert_mode=bool(payload.get("userExpertMode", False)),
            user_slippage_tolerance=payload.get("userSlippageTolerance"),
            user_deadline=payload.get("userDeadline"),
            tokens=tokens,
            dismissed_token_warnings=dismissed,
            pairs=pairs,
            timestamp=int(timestamp) if isinstance(timestamp, (int, float)) else current_timestamp(),
        )


__all__ = [
    "ChainId",
    "DismissalMap",
    "PairMap",
    "SerializedPair",
    "SerializedToken",
    "TokenMap",
    "UserState",
    "pair_key",
    "parse_chain_id",
]
