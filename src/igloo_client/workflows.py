"""Rental, settings and payment request/ack flows."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from . import envelopes
from .channel import Channel
from .clearance import ClearanceCache
from .entry import EntryCheckProtocol, OnGranted
from .models import ClearanceRecord, IglooError, RentStatus, Space, space_id_of
from .store import SpaceStore
from .timers import _now_ms

logger = logging.getLogger(__name__)


class Workflows:
    def __init__(
        self,
        channel: Optional[Channel],
        store: SpaceStore,
        clearance: ClearanceCache,
        entry: EntryCheckProtocol,
        *,
        now_func: Callable[[], int] = _now_ms,
    ) -> None:
        self._channel = channel
        self._store = store
        self._clearance = clearance
        self._entry = entry
        self._now = now_func

    # -- outbound -----------------------------------------------------------

    def _send(self, envelope: envelopes.Envelope, *, loading: bool = False) -> bool:
        if self._channel is None or not self._channel.available:
            logger.warning("channel unavailable, dropping %s", envelope["type"])
            return False
        if loading:
            self._store.is_loading = True
        self._channel.send(envelope)
        return True

    def refresh(self, *, rentals: bool = True) -> None:
        """Re-fetch the igloo list and, optionally, the ownership set."""

        self._send(envelopes.list_spaces())
        if rentals:
            self._send(envelopes.list_my_rentals())

    def request_my_rentals(self) -> bool:
        return self._send(envelopes.list_my_rentals())

    def request_space_info(self, space_id: str) -> bool:
        return self._send(envelopes.space_info(space_id))

    def request_rent_quote(self, space_id: str) -> bool:
        return self._send(envelopes.request_rent_quote(space_id))

    def request_owner_info(self, space_id: str) -> bool:
        return self._send(envelopes.request_owner_info(space_id))

    def check_requirements(self, space_id: str) -> bool:
        return self._send(envelopes.check_requirements(space_id))

    def submit_rental(self, space_id: str, proof: Optional[str] = None) -> bool:
        return self._send(envelopes.submit_rental(space_id, proof), loading=True)

    def update_settings(self, space_id: str, settings: Dict[str, Any]) -> bool:
        return self._send(envelopes.submit_settings(space_id, settings), loading=True)

    def pay_rent(self, space_id: str, proof: str) -> bool:
        logger.info("submitting rent payment for %s", space_id)
        return self._send(envelopes.submit_rent_payment(space_id, proof), loading=True)

    def pay_entry_fee(self, space_id: str, proof: str, on_granted: Optional[OnGranted] = None) -> bool:
        """Forward an entry-fee proof; ``on_granted`` waits in the entry slot for the grant."""

        if on_granted is not None:
            self._entry.park(space_id, on_granted)
        return self._send(envelopes.submit_entry_fee_payment(space_id, proof), loading=True)

    def leave_rental(self, space_id: str) -> bool:
        return self._send(envelopes.leave_rental(space_id), loading=True)

    # -- inbound ------------------------------------------------------------

    def _fail(self, envelope: envelopes.Envelope, what: str) -> None:
        error = IglooError.from_dict(envelope)
        self._store.last_error = error
        logger.warning("%s failed: %s %s", what, error.code, error.message)

    def on_rent_result(self, envelope: envelopes.Envelope) -> None:
        if envelope.get("success"):
            logger.info("rented %s", space_id_of(envelope))
            self.refresh()
        else:
            self._fail(envelope, "rental")
        self._store.is_loading = False

    def on_settings_result(self, envelope: envelopes.Envelope) -> None:
        raw = envelope.get("igloo")
        if envelope.get("success") and raw:
            space = Space.from_dict(raw)
            self._store.replace_rental(space)
            self._store.patch_space(space.space_id, raw)
            self._store.select(space)
            self.refresh()
        elif not envelope.get("success"):
            self._fail(envelope, "settings update")
        self._store.is_loading = False

    def on_pay_rent_result(self, envelope: envelopes.Envelope) -> None:
        if envelope.get("success"):
            space_id = space_id_of(envelope)
            due = envelope.get("newDueDate")
            logger.info("rent paid for %s, next due %s", space_id, due)
            self.refresh()
            selected = self._store.selected
            if selected is not None and selected.space_id == space_id:
                self._store.select(selected.with_rent(RentStatus.CURRENT, due))
        else:
            self._fail(envelope, "rent payment")
        self._store.is_loading = False

    def on_pay_entry_result(self, envelope: envelopes.Envelope) -> None:
        space_id = space_id_of(envelope)
        if envelope.get("success") and space_id is not None:
            # a successful fee payment is the server's grant; it replaces any earlier verdict
            self._clearance.write(
                space_id,
                ClearanceRecord(
                    can_enter=bool(envelope.get("canEnter", True)),
                    token_gate_met=bool(envelope.get("tokenGateMet", True)),
                    entry_fee_paid=True,
                    is_owner=bool(envelope.get("isOwner", False)),
                    checked_at=self._now(),
                ),
            )
            logger.info("entry fee recorded for %s", space_id)
            self._store.show_entry_modal = False
            self._entry.grant(space_id)
        elif not envelope.get("success"):
            self._fail(envelope, "entry fee payment")
        self._store.is_loading = False

    def on_leave_result(self, envelope: envelopes.Envelope) -> None:
        if envelope.get("success"):
            self.refresh()
        else:
            self._fail(envelope, "vacating igloo")
        self._store.is_loading = False

    def on_owner_info(self, envelope: envelopes.Envelope) -> None:
        raw = envelope.get("igloo")
        if raw:
            self._store.select(Space.from_dict(raw))
        elif envelope.get("error"):
            self._fail(envelope, "owner info")

    def on_rent_quote(self, envelope: envelopes.Envelope) -> None:
        self._store.rent_quote = {k: v for k, v in envelope.items() if k != "type"}

    def on_requirements_status(self, envelope: envelopes.Envelope) -> None:
        self._store.requirements_status = {k: v for k, v in envelope.items() if k != "type"}
