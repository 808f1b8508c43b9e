"""Entry-check request/response correlation.

There is exactly one pending slot. A new request replaces whatever was
waiting, so only the most recent caller can ever be let in; responses for
superseded requests still update the clearance cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from . import envelopes
from .channel import Channel
from .clearance import ClearanceCache
from .models import EntryFee, EntryStatus, RequirementsNotMet, Space, TokenGate
from .store import SpaceStore
from .timers import _now_ms

logger = logging.getLogger(__name__)

OnGranted = Callable[[str], None]


class EntryOutcome(str, Enum):
    GRANTED = "granted"
    PENDING = "pending"


@dataclass(frozen=True)
class PendingEntry:
    space_id: str
    on_granted: OnGranted


class EntryCheckProtocol:
    def __init__(
        self,
        channel: Optional[Channel],
        store: SpaceStore,
        clearance: ClearanceCache,
        *,
        now_func: Callable[[], int] = _now_ms,
    ) -> None:
        self._channel = channel
        self._store = store
        self._clearance = clearance
        self._now = now_func
        self._pending: Optional[PendingEntry] = None

    @property
    def pending(self) -> Optional[PendingEntry]:
        return self._pending

    def request_entry(self, space_id: str, on_granted: OnGranted) -> EntryOutcome:
        """Ask the server whether we may enter ``space_id``.

        Returns ``PENDING``; ``on_granted(space_id)`` runs later from the
        dispatcher if the server allows entry. Without a usable channel the
        check fails open and ``on_granted`` runs before this returns.
        """

        if self._channel is None or not self._channel.available:
            logger.warning("channel unavailable, allowing entry to %s", space_id)
            self._pending = None
            on_granted(space_id)
            return EntryOutcome.GRANTED

        self._pending = PendingEntry(space_id=space_id, on_granted=on_granted)
        logger.debug("checking entry requirements for %s", space_id)
        self._channel.send(envelopes.request_entry(space_id))
        return EntryOutcome.PENDING

    def park(self, space_id: str, on_granted: OnGranted) -> None:
        """Occupy the pending slot without sending a check (e.g. while paying a fee)."""

        self._pending = PendingEntry(space_id=space_id, on_granted=on_granted)

    def cancel(self) -> None:
        self._pending = None

    def handle_response(self, envelope: envelopes.Envelope) -> None:
        status = EntryStatus.from_dict(envelope)
        self._clearance.write(status.space_id, status.clearance(self._now()))
        if status.can_enter:
            if not self.grant(status.space_id):
                logger.debug("entry to %s allowed but no request is waiting", status.space_id)
            return

        logger.info("requirements not met for %s: %s", status.space_id, status.blocking_reason)
        self._store.surface_requirements(RequirementsNotMet(space=self._display_space(status), status=status))
        self._pending = None

    def grant(self, space_id: str) -> bool:
        """Fire and clear the pending continuation if it is waiting on ``space_id``."""

        pending = self._pending
        if pending is None or pending.space_id != space_id:
            return False
        self._pending = None
        logger.info("entry granted to %s", space_id)
        pending.on_granted(space_id)
        return True

    def _display_space(self, status: EntryStatus) -> Space:
        cached = self._store.get(status.space_id)
        if cached is not None:
            return replace(
                cached,
                owner_wallet=status.owner_wallet or cached.owner_wallet,
                owner_username=status.owner_username or cached.owner_username,
            )

        gated = status.token_gate_required > 0
        paid = status.entry_fee_amount > 0
        token_symbol = status.token_gate_symbol or "TOKEN"
        fee_symbol = status.entry_fee_symbol or "TOKEN"
        return Space(
            space_id=status.space_id,
            owner_wallet=status.owner_wallet,
            owner_username=status.owner_username,
            access_type=status.inferred_access_type(),
            has_token_gate=gated,
            token_gate_info={"symbol": token_symbol, "minimum": status.token_gate_required} if gated else None,
            token_gate=TokenGate(
                enabled=True,
                token_address=status.token_gate_address,
                token_symbol=token_symbol,
                minimum_balance=status.token_gate_required,
            )
            if gated
            else None,
            has_entry_fee=paid,
            entry_fee_amount=status.entry_fee_amount,
            entry_fee=EntryFee(
                enabled=True,
                amount=status.entry_fee_amount,
                token_address=status.entry_fee_token_address,
                token_symbol=fee_symbol,
            )
            if paid
            else None,
        )
