"""Client-side igloo state, entry checks and eligibility polling."""

from .channel import Channel, ChannelUnavailable, WebSocketChannel
from .clearance import ClearanceCache
from .config import IglooConfig, load_config
from .dispatcher import MessageDispatcher
from .entry import EntryCheckProtocol, EntryOutcome
from .identity import Identity, IdentitySource
from .models import (
    AccessType,
    ClearanceRecord,
    EntryStatus,
    IglooError,
    MalformedEnvelope,
    RentStatus,
    RequirementsNotMet,
    Space,
)
from .payments import PaymentCollaborator, PaymentResult
from .poller import EligibilityPoller, PollerState
from .service import IglooSession
from .store import SpaceStore, StoreSnapshot

__all__ = [
    "AccessType",
    "Channel",
    "ChannelUnavailable",
    "ClearanceCache",
    "ClearanceRecord",
    "EligibilityPoller",
    "EntryCheckProtocol",
    "EntryOutcome",
    "EntryStatus",
    "Identity",
    "IdentitySource",
    "IglooConfig",
    "IglooError",
    "IglooSession",
    "MalformedEnvelope",
    "MessageDispatcher",
    "PaymentCollaborator",
    "PaymentResult",
    "PollerState",
    "RentStatus",
    "RequirementsNotMet",
    "Space",
    "SpaceStore",
    "StoreSnapshot",
    "WebSocketChannel",
    "load_config",
]
