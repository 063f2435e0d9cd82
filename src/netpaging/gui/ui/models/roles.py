"""Role definitions exposed by the paging list model."""

from __future__ import annotations

from enum import IntEnum
from typing import Dict

from PySide6.QtCore import Qt


class Roles(IntEnum):
    """Custom roles exposed to QML or widgets."""

    MOVIE_ID = Qt.UserRole + 1
    TITLE = Qt.UserRole + 2
    POSTER_URL = Qt.UserRole + 3
    OVERVIEW = Qt.UserRole + 4
    RELEASE_DATE = Qt.UserRole + 5
    VOTE_AVERAGE = Qt.UserRole + 6
    IS_PLACEHOLDER = Qt.UserRole + 7


def role_names(base: Dict[int, bytes] | None = None) -> Dict[int, bytes]:
    """Return a mapping of Qt role numbers to byte names."""

    mapping: Dict[int, bytes] = {} if base is None else dict(base)
    mapping.update(
        {
            Roles.MOVIE_ID: b"movieId",
            Roles.TITLE: b"title",
            Roles.POSTER_URL: b"posterUrl",
            Roles.OVERVIEW: b"overview",
            Roles.RELEASE_DATE: b"releaseDate",
            Roles.VOTE_AVERAGE: b"voteAverage",
            Roles.IS_PLACEHOLDER: b"isPlaceholder",
        }
    )
    return mapping
