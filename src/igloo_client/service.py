from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Union

from . import envelopes
from .channel import Channel
from .clearance import ClearanceCache
from .config import IglooConfig
from .dispatcher import MessageDispatcher
from .entry import EntryCheckProtocol, EntryOutcome, OnGranted
from .identity import Identity, IdentitySource
from .models import IglooError, Space, space_id_of
from .poller import EligibilityPoller, OnEvict
from .store import SpaceStore, StoreSnapshot
from .timers import LoopScheduler, Scheduler, _now_ms
from .workflows import Workflows

logger = logging.getLogger(__name__)


class IglooSession:
    """Everything one player session knows about igloos.

    Built once per connection with its collaborators injected: the message
    channel (``None`` means offline), the identity source, a scheduler for
    the eligibility timers and a millisecond clock for clearance stamps.
    """

    def __init__(
        self,
        channel: Optional[Channel] = None,
        *,
        identity: IdentitySource | None = None,
        scheduler: Scheduler | None = None,
        config: IglooConfig | None = None,
        now_func: Callable[[], int] = _now_ms,
    ) -> None:
        self.channel = channel
        self.identity = identity or IdentitySource()
        self.config = config or IglooConfig()
        self.store = SpaceStore()
        self.clearance = ClearanceCache()
        self.entry = EntryCheckProtocol(channel, self.store, self.clearance, now_func=now_func)
        self.workflows = Workflows(channel, self.store, self.clearance, self.entry, now_func=now_func)
        self.poller = EligibilityPoller(channel, self.identity, scheduler or LoopScheduler(), self.config)
        self.dispatcher = MessageDispatcher()
        self._register_handlers()
        self._identity_subscription = self.identity.subscribe(self._on_identity_change)
        self._attached = False

    def _register_handlers(self) -> None:
        routes = {
            envelopes.LIST: self._on_list,
            envelopes.MY_RENTALS: self._on_my_rentals,
            envelopes.INFO: self._on_info,
            envelopes.UPDATED: self._on_updated,
            envelopes.KICKED: self._on_kicked,
            envelopes.ERROR: self._on_error,
            envelopes.CAN_ENTER: self.entry.handle_response,
            envelopes.ELIGIBILITY_CHECK: self.poller.handle_result,
            envelopes.CAN_RENT: self.workflows.on_rent_quote,
            envelopes.RENT_RESULT: self.workflows.on_rent_result,
            envelopes.SETTINGS_RESULT: self.workflows.on_settings_result,
            envelopes.PAY_RENT_RESULT: self.workflows.on_pay_rent_result,
            envelopes.PAY_ENTRY_RESULT: self.workflows.on_pay_entry_result,
            envelopes.LEAVE_RESULT: self.workflows.on_leave_result,
            envelopes.OWNER_INFO: self.workflows.on_owner_info,
            envelopes.REQUIREMENTS_STATUS: self.workflows.on_requirements_status,
        }
        for tag, handler in routes.items():
            self.dispatcher.register(tag, handler)

    # -- lifecycle ----------------------------------------------------------

    def attach(self) -> None:
        """Start listening on the channel and request the initial igloo data."""

        if self.channel is None or self._attached:
            return
        self.channel.add_listener(self.dispatcher.dispatch)
        self._attached = True
        logger.debug("requesting igloo list")
        self.workflows.refresh(rentals=self.identity.current.present)

    def detach(self) -> None:
        if self.channel is not None and self._attached:
            self.channel.remove_listener(self.dispatcher.dispatch)
        self._attached = False

    def close(self) -> None:
        self.poller.disarm()
        self.entry.cancel()
        self.detach()
        self.identity.unsubscribe(self._identity_subscription)

    def handle_message(self, raw: Any) -> bool:
        return self.dispatcher.dispatch(raw)

    def _on_identity_change(self, previous: Identity, current: Identity) -> None:
        wallet_changed = previous.wallet_address != current.wallet_address
        if wallet_changed:
            logger.info("wallet changed, clearing igloo clearance")
            self.clearance.clear()
        if not current.present:
            self.poller.identity_lost()
            return
        if self._attached and (wallet_changed or not previous.present):
            self.workflows.request_my_rentals()

    # -- inbound ------------------------------------------------------------

    def _on_list(self, envelope: envelopes.Envelope) -> None:
        spaces = [Space.from_dict(raw) for raw in envelope.get("igloos") or []]
        logger.debug("received igloo list: %d igloos", len(spaces))
        self.store.replace_spaces(spaces)

    def _on_my_rentals(self, envelope: envelopes.Envelope) -> None:
        spaces = [Space.from_dict(raw) for raw in envelope.get("igloos") or []]
        logger.debug("received my rentals: %d igloos", len(spaces))
        self.store.replace_rentals(spaces)

    def _on_info(self, envelope: envelopes.Envelope) -> None:
        raw = envelope.get("igloo")
        if raw:
            self.store.replace_space(Space.from_dict(raw))

    def _on_updated(self, envelope: envelopes.Envelope) -> None:
        raw = envelope.get("igloo")
        if not isinstance(raw, dict):
            return
        space_id = space_id_of(raw)
        if space_id is None:
            return
        self.clearance.invalidate(space_id)
        self.store.patch_space(space_id, raw)

    def _on_kicked(self, envelope: envelopes.Envelope) -> None:
        self.poller.evict(envelope.get("reason") or "SETTINGS_CHANGED")
        space_id = space_id_of(envelope)
        if space_id is not None:
            self.clearance.invalidate(space_id)

    def _on_error(self, envelope: envelopes.Envelope) -> None:
        error = IglooError.from_dict(envelope)
        logger.error("igloo error: %s %s", error.code, error.message)
        self.store.last_error = error
        self.store.is_loading = False

    # -- entry & occupancy --------------------------------------------------

    def request_entry(self, space_id: str, on_granted: OnGranted) -> EntryOutcome:
        return self.entry.request_entry(space_id, on_granted)

    def enter_space(self, space_id: str, on_evict: OnEvict) -> None:
        """Declare occupancy of ``space_id`` and start re-validating access."""

        logger.info("entered %s", space_id)
        if self.channel is not None and self.channel.available:
            self.channel.send(envelopes.declare_occupancy(space_id))
        self.poller.arm(space_id, on_evict)

    def leave_space(self) -> None:
        if self.poller.space_id is not None:
            logger.info("left %s", self.poller.space_id)
        self.poller.disarm()

    @property
    def current_space(self) -> Optional[str]:
        return self.poller.space_id

    # -- lookups ------------------------------------------------------------

    def get_space(self, space_id: str) -> Optional[Space]:
        return self.store.get(space_id)

    def is_owner(self, space_id: str) -> bool:
        return self.store.is_owner(space_id, self.identity.current.wallet_address)

    def banner_info(self, space_id: str) -> Optional[Dict[str, Any]]:
        return self.store.banner_info(space_id)

    def snapshot(self) -> StoreSnapshot:
        return self.store.snapshot()

    # -- UI intents ---------------------------------------------------------

    def open_details_panel(self, space_id: str) -> Space:
        space = self.store.select_id(space_id)
        self.store.show_details_panel = True
        return space

    def open_requirements_panel(self, space_id: str) -> Space:
        space = self.store.select_id(space_id)
        self.store.show_requirements_panel = True
        self.workflows.check_requirements(space_id)
        return space

    def open_rental_modal(self, space_id: str) -> Space:
        space = self.store.select_id(space_id, fallback=self.store.selected)
        self.store.show_details_panel = False
        self.store.show_rental_modal = True
        self.workflows.request_rent_quote(space.space_id)
        return space

    def open_settings_panel(self, space: Union[str, Space]) -> Space:
        if isinstance(space, Space):
            selected = space
        else:
            selected = self.store.get_rental(space) or Space(space_id=space)
        self.store.select(selected)
        self.store.show_settings_panel = True
        self.workflows.request_owner_info(selected.space_id)
        return selected

    def close_panels(self) -> None:
        self.store.close_all()

    def enter_demo(self, space_id: str, on_enter: Callable[[str], None]) -> None:
        self.store.show_details_panel = False
        on_enter(space_id)

    # -- workflows ----------------------------------------------------------

    def submit_rental(self, space_id: str, proof: Optional[str] = None) -> bool:
        return self.workflows.submit_rental(space_id, proof)

    def update_settings(self, space_id: str, settings: Dict[str, Any]) -> bool:
        return self.workflows.update_settings(space_id, settings)

    def pay_rent(self, space_id: str, proof: str) -> bool:
        return self.workflows.pay_rent(space_id, proof)

    def pay_entry_fee(self, space_id: str, proof: str, on_granted: Optional[OnGranted] = None) -> bool:
        return self.workflows.pay_entry_fee(space_id, proof, on_granted)

    def leave_rental(self, space_id: str) -> bool:
        return self.workflows.leave_rental(space_id)

    def refresh(self) -> None:
        self.workflows.refresh(rentals=self.identity.current.present)
