from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Mapping, Optional, Protocol, TypeVar

from ...config import DEFAULT_POSTER_SIZE, IMAGE_BASE_URL

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


@dataclass(frozen=True)
class Movie:
    id: int
    title: str
    poster_path: Optional[str] = None
    overview: str = ""
    release_date: Optional[str] = None
    vote_average: float = 0.0

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> Movie:
        """Build a movie from one entry of the ``results`` array.

        Raises ``KeyError``/``TypeError``/``ValueError`` when the entry lacks
        an id or title; callers translate these into decode failures.
        """
        return cls(
            id=int(raw["id"]),
            title=str(raw["title"]),
            poster_path=raw.get("poster_path"),
            overview=raw.get("overview") or "",
            release_date=raw.get("release_date") or None,
            vote_average=float(raw.get("vote_average") or 0.0),
        )

    def poster_url(self, size: str = DEFAULT_POSTER_SIZE) -> Optional[str]:
        if not self.poster_path:
            return None
        return f"{IMAGE_BASE_URL}{size}{self.poster_path}"


@dataclass
class PagePayload(Generic[T]):
    """One decoded response of the page endpoint."""

    page: int
    items: List[T] = field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class ItemComparator(Protocol[T_contra]):
    """Identity and content equality used when diffing presented lists."""

    def same_identity(self, old: T_contra, new: T_contra) -> bool: ...

    def same_content(self, old: T_contra, new: T_contra) -> bool: ...


class MovieComparator:
    """Compare movies by id, and by the visually stable fields for content."""

    def same_identity(self, old: Movie, new: Movie) -> bool:
        return old.id == new.id

    def same_content(self, old: Movie, new: Movie) -> bool:
        return old.title == new.title and old.poster_path == new.poster_path
