from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Union

from .paging import LoadType


@dataclass(frozen=True)
class NotLoading:
    end_of_pagination_reached: bool = False

    def __repr__(self) -> str:
        return f"NotLoading(end={self.end_of_pagination_reached})"


@dataclass(frozen=True)
class Loading:
    def __repr__(self) -> str:
        return "Loading"


@dataclass(frozen=True)
class LoadStateError:
    cause: Exception

    def __eq__(self, other: object) -> bool:
        # Exceptions compare by identity; two error states for the same failure
        # object are equal.
        return isinstance(other, LoadStateError) and other.cause is self.cause

    def __hash__(self) -> int:
        return id(self.cause)

    def __repr__(self) -> str:
        return f"Error({self.cause.__class__.__name__}: {self.cause})"


LoadState = Union[NotLoading, Loading, LoadStateError]

INCOMPLETE = NotLoading(False)
COMPLETE = NotLoading(True)
LOADING = Loading()


def is_terminal(state: LoadState) -> bool:
    return isinstance(state, NotLoading) and state.end_of_pagination_reached


@dataclass(frozen=True)
class LoadStates:
    refresh: LoadState = LOADING
    prepend: LoadState = INCOMPLETE
    append: LoadState = INCOMPLETE

    def get(self, load_type: LoadType) -> LoadState:
        return getattr(self, load_type.value)

    def modified(self, load_type: LoadType, state: LoadState) -> LoadStates:
        return replace(self, **{load_type.value: state})

    def errors(self) -> list[LoadType]:
        return [
            load_type
            for load_type in LoadType
            if isinstance(self.get(load_type), LoadStateError)
        ]


@dataclass(frozen=True)
class CombinedLoadStates:
    """Load states as surfaced to UI observers."""

    refresh: LoadState
    prepend: LoadState
    append: LoadState
    source: LoadStates

    @classmethod
    def from_source(cls, source: LoadStates) -> CombinedLoadStates:
        return cls(
            refresh=source.refresh,
            prepend=source.prepend,
            append=source.append,
            source=source,
        )
