from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional


class MalformedEnvelope(ValueError):
    """Raised when an inbound envelope or entity cannot be parsed."""


class AccessType(str, Enum):
    PRIVATE = "private"
    PUBLIC = "public"
    TOKEN = "token"
    FEE = "fee"
    BOTH = "both"


class RentStatus(str, Enum):
    CURRENT = "current"
    GRACE_PERIOD = "grace_period"
    OVERDUE = "overdue"


def _require_mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedEnvelope(f"{what} must be an object")
    return data


def space_id_of(data: Dict[str, Any]) -> str | None:
    """Return the space identifier carried by a wire mapping, if any."""

    space_id = data.get("iglooId", data.get("spaceId"))
    if isinstance(space_id, str) and space_id:
        return space_id
    return None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedEnvelope("expected a string")
    return value


def _number(value: Any, default: float = 0) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedEnvelope("expected a number")
    if not math.isfinite(value):
        raise MalformedEnvelope("expected a finite number")
    return value


def _opt_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


@dataclass(frozen=True)
class TokenGate:
    enabled: bool = False
    token_address: Optional[str] = None
    token_symbol: str = "TOKEN"
    minimum_balance: float = 0

    @classmethod
    def from_dict(cls, data: Any) -> "TokenGate | None":
        if data is None:
            return None
        data = _require_mapping(data, "tokenGate")
        return cls(
            enabled=bool(data.get("enabled", False)),
            token_address=_opt_str(data.get("tokenAddress")),
            token_symbol=data.get("tokenSymbol") or "TOKEN",
            minimum_balance=_number(data.get("minimumBalance")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "tokenAddress": self.token_address,
            "tokenSymbol": self.token_symbol,
            "minimumBalance": self.minimum_balance,
        }


@dataclass(frozen=True)
class EntryFee:
    enabled: bool = False
    amount: float = 0
    token_address: Optional[str] = None
    token_symbol: str = "TOKEN"

    @classmethod
    def from_dict(cls, data: Any) -> "EntryFee | None":
        if data is None:
            return None
        data = _require_mapping(data, "entryFee")
        return cls(
            enabled=bool(data.get("enabled", False)),
            amount=_number(data.get("amount")),
            token_address=_opt_str(data.get("tokenAddress")),
            token_symbol=data.get("tokenSymbol") or "TOKEN",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "amount": self.amount,
            "tokenAddress": self.token_address,
            "tokenSymbol": self.token_symbol,
        }


@dataclass(frozen=True)
class SpaceStats:
    total_visits: int = 0
    unique_visitors: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "SpaceStats":
        if data is None:
            return cls()
        data = _require_mapping(data, "stats")
        extra = {k: v for k, v in data.items() if k not in {"totalVisits", "uniqueVisitors"}}
        return cls(
            total_visits=int(_number(data.get("totalVisits"))),
            unique_visitors=int(_number(data.get("uniqueVisitors"))),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        payload["totalVisits"] = self.total_visits
        payload["uniqueVisitors"] = self.unique_visitors
        return payload


_SPACE_KEYS = {
    "iglooId",
    "spaceId",
    "isRented",
    "isReserved",
    "isPermanent",
    "ownerWallet",
    "ownerUsername",
    "accessType",
    "tokenGate",
    "entryFee",
    "hasTokenGate",
    "hasEntryFee",
    "entryFeeAmount",
    "tokenGateInfo",
    "banner",
    "rentStatus",
    "rentDueDate",
    "stats",
}


@dataclass(frozen=True)
class Space:
    """An igloo as the server last described it.

    ``extra`` keeps wire fields this client does not model (position,
    rent history, ...) so a partial patch never drops them.
    """

    space_id: str
    is_rented: bool = False
    is_reserved: bool = False
    is_permanent: bool = False
    owner_wallet: Optional[str] = None
    owner_username: Optional[str] = None
    access_type: AccessType = AccessType.PUBLIC
    token_gate: Optional[TokenGate] = None
    entry_fee: Optional[EntryFee] = None
    has_token_gate: bool = False
    has_entry_fee: bool = False
    entry_fee_amount: float = 0
    token_gate_info: Optional[Dict[str, Any]] = None
    banner: Dict[str, Any] = field(default_factory=dict)
    rent_status: Optional[RentStatus] = None
    rent_due_date: Any = None
    stats: SpaceStats = field(default_factory=SpaceStats)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Space":
        data = _require_mapping(data, "igloo")
        space_id = space_id_of(data)
        if space_id is None:
            raise MalformedEnvelope("igloo requires iglooId")
        try:
            access_type = AccessType(data.get("accessType") or AccessType.PUBLIC.value)
            rent_status = RentStatus(data["rentStatus"]) if data.get("rentStatus") else None
        except ValueError as exc:
            raise MalformedEnvelope(str(exc)) from exc
        token_gate = TokenGate.from_dict(data.get("tokenGate"))
        entry_fee = EntryFee.from_dict(data.get("entryFee"))
        banner = data.get("banner") or {}
        token_gate_info = data.get("tokenGateInfo")
        if not isinstance(banner, dict) or (token_gate_info is not None and not isinstance(token_gate_info, dict)):
            raise MalformedEnvelope("banner and tokenGateInfo must be objects")
        return cls(
            space_id=space_id,
            is_rented=bool(data.get("isRented", False)),
            is_reserved=bool(data.get("isReserved", False)),
            is_permanent=bool(data.get("isPermanent", False)),
            owner_wallet=_opt_str(data.get("ownerWallet")),
            owner_username=_opt_str(data.get("ownerUsername")),
            access_type=access_type,
            token_gate=token_gate,
            entry_fee=entry_fee,
            has_token_gate=bool(data.get("hasTokenGate", token_gate.enabled if token_gate else False)),
            has_entry_fee=bool(data.get("hasEntryFee", entry_fee.enabled if entry_fee else False)),
            entry_fee_amount=_number(data.get("entryFeeAmount", entry_fee.amount if entry_fee else 0)),
            token_gate_info=token_gate_info,
            banner=dict(banner),
            rent_status=rent_status,
            rent_due_date=data.get("rentDueDate"),
            stats=SpaceStats.from_dict(data.get("stats")),
            extra={k: v for k, v in data.items() if k not in _SPACE_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        payload.update(
            {
                "iglooId": self.space_id,
                "isRented": self.is_rented,
                "isReserved": self.is_reserved,
                "isPermanent": self.is_permanent,
                "ownerWallet": self.owner_wallet,
                "ownerUsername": self.owner_username,
                "accessType": self.access_type.value,
                "hasTokenGate": self.has_token_gate,
                "hasEntryFee": self.has_entry_fee,
                "entryFeeAmount": self.entry_fee_amount,
                "tokenGateInfo": self.token_gate_info,
                "banner": dict(self.banner),
                "rentStatus": self.rent_status.value if self.rent_status else None,
                "rentDueDate": self.rent_due_date,
                "stats": self.stats.to_dict(),
            }
        )
        if self.token_gate is not None:
            payload["tokenGate"] = self.token_gate.to_dict()
        if self.entry_fee is not None:
            payload["entryFee"] = self.entry_fee.to_dict()
        return payload

    def merged(self, patch: Dict[str, Any]) -> "Space":
        """Return a copy with ``patch`` (wire fields) applied over this space."""

        base = self.to_dict()
        # summary flags follow a patched gate/fee unless the patch sets them too
        if "tokenGate" in patch:
            base.pop("hasTokenGate", None)
        if "entryFee" in patch:
            base.pop("hasEntryFee", None)
            base.pop("entryFeeAmount", None)
        return Space.from_dict({**base, **patch})

    def with_rent(self, rent_status: RentStatus, rent_due_date: Any) -> "Space":
        return replace(self, rent_status=rent_status, rent_due_date=rent_due_date)


@dataclass(frozen=True)
class ClearanceRecord:
    """Server verdict on whether the current identity may enter one space."""

    can_enter: bool
    token_gate_met: Optional[bool]
    entry_fee_paid: Optional[bool]
    is_owner: Optional[bool]
    checked_at: int


@dataclass(frozen=True)
class EntryStatus:
    """Parsed ``igloo_can_enter`` response."""

    space_id: str
    can_enter: bool
    is_owner: bool = False
    token_gate_met: Optional[bool] = None
    entry_fee_paid: Optional[bool] = None
    user_token_balance: float = 0
    token_gate_required: float = 0
    token_gate_symbol: Optional[str] = None
    token_gate_address: Optional[str] = None
    entry_fee_amount: float = 0
    entry_fee_symbol: Optional[str] = None
    entry_fee_token_address: Optional[str] = None
    owner_wallet: Optional[str] = None
    owner_username: Optional[str] = None
    blocking_reason: Optional[str] = None
    message: Optional[str] = None
    retry_after_ms: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "EntryStatus":
        data = _require_mapping(data, "entry check")
        space_id = space_id_of(data)
        if space_id is None:
            raise MalformedEnvelope("entry check requires iglooId")
        return cls(
            space_id=space_id,
            can_enter=bool(data.get("canEnter", False)),
            is_owner=bool(data.get("isOwner", False)),
            token_gate_met=_opt_bool(data.get("tokenGateMet")),
            entry_fee_paid=_opt_bool(data.get("entryFeePaid")),
            user_token_balance=_number(data.get("userTokenBalance")),
            token_gate_required=_number(data.get("tokenGateRequired")),
            token_gate_symbol=_opt_str(data.get("tokenGateSymbol")),
            token_gate_address=_opt_str(data.get("tokenGateAddress")),
            entry_fee_amount=_number(data.get("entryFeeAmount", data.get("paymentAmount"))),
            entry_fee_symbol=_opt_str(data.get("entryFeeSymbol")),
            entry_fee_token_address=_opt_str(data.get("entryFeeTokenAddress")),
            owner_wallet=_opt_str(data.get("ownerWallet")),
            owner_username=_opt_str(data.get("ownerUsername")),
            blocking_reason=_opt_str(data.get("blockingReason", data.get("reason"))),
            message=_opt_str(data.get("message")),
            retry_after_ms=data.get("retryAfterMs"),
        )

    @property
    def payment_amount(self) -> float:
        return self.entry_fee_amount

    def clearance(self, checked_at: int) -> ClearanceRecord:
        return ClearanceRecord(
            can_enter=self.can_enter,
            token_gate_met=self.token_gate_met,
            entry_fee_paid=self.entry_fee_paid,
            is_owner=self.is_owner,
            checked_at=checked_at,
        )

    def inferred_access_type(self) -> AccessType:
        gated = self.token_gate_required > 0
        paid = self.entry_fee_amount > 0
        if gated and paid:
            return AccessType.BOTH
        if gated:
            return AccessType.TOKEN
        if paid:
            return AccessType.FEE
        return AccessType.PUBLIC


@dataclass(frozen=True)
class RequirementsNotMet:
    """What the requirements panel shows after a denied entry check."""

    space: Space
    status: EntryStatus


@dataclass(frozen=True)
class IglooError:
    code: str
    message: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IglooError":
        return cls(code=str(data.get("error") or "UNKNOWN"), message=str(data.get("message") or ""))
