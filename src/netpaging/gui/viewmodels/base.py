"""BaseViewModel: subscription bookkeeping shared by all view models."""

from __future__ import annotations

from typing import Protocol, TypeVar


class Cancellable(Protocol):
    def cancel(self) -> None: ...


C = TypeVar("C", bound=Cancellable)


class BaseViewModel:
    """Tracks subscriptions so ``dispose()`` can release them all at once."""

    def __init__(self) -> None:
        self._subscriptions: list[Cancellable] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def track(self, subscription: C) -> C:
        self._subscriptions.append(subscription)
        return subscription

    def dispose(self) -> None:
        """Cancel all tracked subscriptions."""
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        self._disposed = True
