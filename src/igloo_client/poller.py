from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from . import envelopes
from .channel import Channel, ChannelUnavailable
from .config import IglooConfig
from .identity import IdentitySource
from .models import space_id_of
from .timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

OnEvict = Callable[[str], None]


class PollerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class EligibilityPoller:
    """Re-validates access while the player occupies an igloo.

    Armed: a one-shot check ``initial_check_delay_s`` after entry plus a
    recurring check every ``check_interval_s``. Every way back to Idle
    cancels both timers before anything else happens.
    """

    def __init__(
        self,
        channel: Optional[Channel],
        identity: IdentitySource,
        scheduler: Scheduler,
        config: IglooConfig | None = None,
    ) -> None:
        self._channel = channel
        self._identity = identity
        self._scheduler = scheduler
        self.config = config or IglooConfig()
        self._space_id: Optional[str] = None
        self._on_evict: Optional[OnEvict] = None
        self._initial_handle: Optional[TimerHandle] = None
        self._interval_handle: Optional[TimerHandle] = None

    @property
    def state(self) -> PollerState:
        return PollerState.ARMED if self._space_id is not None else PollerState.IDLE

    @property
    def space_id(self) -> Optional[str]:
        return self._space_id

    @property
    def pending_timers(self) -> int:
        return sum(1 for handle in (self._initial_handle, self._interval_handle) if handle is not None)

    def arm(self, space_id: str, on_evict: OnEvict) -> None:
        self.disarm()
        self._space_id = space_id
        self._on_evict = on_evict
        if not self._identity.current.present:
            self.evict("AUTH_LOST")
            return
        self._initial_handle = self._scheduler.call_later(self.config.initial_check_delay_s, self._initial_tick)
        self._interval_handle = self._scheduler.call_later(self.config.check_interval_s, self._interval_tick)

    def disarm(self) -> None:
        for handle in (self._initial_handle, self._interval_handle):
            if handle is not None:
                handle.cancel()
        self._initial_handle = None
        self._interval_handle = None
        self._space_id = None
        self._on_evict = None

    def evict(self, reason: str) -> bool:
        """Leave the occupied igloo now; returns False when already Idle."""

        if self._space_id is None:
            return False
        space_id, on_evict = self._space_id, self._on_evict
        self.disarm()
        logger.info("evicted from %s: %s", space_id, reason)
        if on_evict is not None:
            on_evict(reason)
        return True

    def identity_lost(self) -> None:
        if self._space_id is not None:
            self.evict("AUTH_LOST")

    def handle_result(self, envelope: envelopes.Envelope) -> None:
        if self._space_id is None or space_id_of(envelope) != self._space_id:
            return
        if not envelope.get("canEnter") and not envelope.get("isOwner"):
            self.evict(envelope.get("reason") or "ACCESS_REVOKED")

    def _initial_tick(self) -> None:
        self._initial_handle = None
        self._check()

    def _interval_tick(self) -> None:
        self._interval_handle = None
        if self._space_id is not None:
            self._interval_handle = self._scheduler.call_later(self.config.check_interval_s, self._interval_tick)
        self._check()

    def _check(self) -> None:
        if self._space_id is None:
            return
        if self._channel is None or not self._channel.available:
            logger.debug("skipping eligibility check for %s, channel unavailable", self._space_id)
            return
        logger.debug("eligibility check for %s", self._space_id)
        try:
            self._channel.send(envelopes.eligibility_check(self._space_id))
        except ChannelUnavailable as exc:
            logger.warning("eligibility check for %s not sent: %s", self._space_id, exc)
