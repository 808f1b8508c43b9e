from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional


@dataclass(frozen=True)
class Identity:
    wallet_address: Optional[str] = None
    authenticated: bool = False

    @property
    def present(self) -> bool:
        """True when a wallet is connected and authenticated."""

        return self.authenticated and bool(self.wallet_address)


IdentityCallback = Callable[[Identity, Identity], None]


@dataclass
class IdentitySubscription:
    callback: IdentityCallback


class IdentitySource:
    """Current player identity; subscribers get ``(previous, current)`` on every change."""

    def __init__(self, initial: Identity | None = None) -> None:
        self._current = initial or Identity()
        self._subscriptions: List[IdentitySubscription] = []

    @property
    def current(self) -> Identity:
        return self._current

    def update(self, wallet_address: Optional[str], authenticated: bool) -> None:
        new = Identity(wallet_address=wallet_address, authenticated=authenticated)
        if new == self._current:
            return
        previous, self._current = self._current, new
        for subscription in list(self._subscriptions):
            subscription.callback(previous, new)

    def sign_out(self) -> None:
        self.update(None, False)

    def subscribe(self, callback: IdentityCallback) -> IdentitySubscription:
        subscription = IdentitySubscription(callback=callback)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: IdentitySubscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return
