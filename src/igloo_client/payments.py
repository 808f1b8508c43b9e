"""Boundary to the value-transfer collaborator.

The collaborator moves funds and hands back an opaque proof (a transaction
signature). This client never inspects the proof; it only forwards it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .entry import OnGranted
from .workflows import Workflows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    proof: Optional[str] = None
    error: Optional[str] = None


class PaymentCollaborator(Protocol):
    async def transfer(self, space_id: str, amount: float, destination: str, token: str) -> PaymentResult: ...


async def _settle(
    payer: PaymentCollaborator, space_id: str, amount: float, destination: str, token: str, what: str
) -> Optional[str]:
    result = await payer.transfer(space_id, amount, destination, token)
    if not result.success or not result.proof:
        logger.error("%s transfer for %s failed: %s", what, space_id, result.error or "no proof")
        return None
    return result.proof


async def rent_with_payment(
    workflows: Workflows, payer: PaymentCollaborator, space_id: str, amount: float, destination: str, token: str
) -> bool:
    proof = await _settle(payer, space_id, amount, destination, token, "rental")
    return proof is not None and workflows.submit_rental(space_id, proof)


async def pay_rent_with_payment(
    workflows: Workflows, payer: PaymentCollaborator, space_id: str, amount: float, destination: str, token: str
) -> bool:
    proof = await _settle(payer, space_id, amount, destination, token, "rent")
    return proof is not None and workflows.pay_rent(space_id, proof)


async def pay_entry_fee_with_payment(
    workflows: Workflows,
    payer: PaymentCollaborator,
    space_id: str,
    amount: float,
    destination: str,
    token: str,
    on_granted: Optional[OnGranted] = None,
) -> bool:
    proof = await _settle(payer, space_id, amount, destination, token, "entry fee")
    return proof is not None and workflows.pay_entry_fee(space_id, proof, on_granted)
