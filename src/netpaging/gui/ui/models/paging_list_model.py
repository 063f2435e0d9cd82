"""Qt list model over a :class:`PagingDataPresenter`."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from PySide6.QtCore import QAbstractListModel, QModelIndex, QObject, Qt, Signal, Slot

from ....application.services.list_differ import ChangeOp, InsertOp, ListOp, MoveOp, RemoveOp
from ....application.services.presenter import PagingDataPresenter
from ....domain.models.core import Movie
from ....domain.models.load_state import CombinedLoadStates
from .roles import Roles, role_names

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Loading…"


class PagingListModel(QAbstractListModel):
    """Expose the presented movie list to Qt views.

    The presenter drives row insertions, removals, moves and changes through
    :meth:`begin`/:meth:`end`; reading a row through :meth:`data` doubles as
    the access hint that lets the pager prefetch.
    """

    loadStatesChanged = Signal(object)

    def __init__(self, presenter: PagingDataPresenter, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._presenter = presenter
        self._move_open = False
        presenter.set_list_callback(self)
        presenter.add_load_state_observer(self._on_load_states)

    @property
    def presenter(self) -> PagingDataPresenter:
        return self._presenter

    def detach(self) -> None:
        self._presenter.set_list_callback(None)
        self._presenter.remove_load_state_observer(self._on_load_states)

    # ------------------------------------------------------------------
    # Presenter callbacks
    # ------------------------------------------------------------------
    def begin(self, op: ListOp) -> None:
        if isinstance(op, InsertOp):
            self.beginInsertRows(QModelIndex(), op.index, op.index + op.count - 1)
        elif isinstance(op, RemoveOp):
            self.beginRemoveRows(QModelIndex(), op.index, op.index + op.count - 1)
        elif isinstance(op, MoveOp):
            # Qt expects the destination row in pre-move coordinates.
            destination = op.to_index + 1 if op.to_index > op.from_index else op.to_index
            self._move_open = self.beginMoveRows(
                QModelIndex(), op.from_index, op.from_index, QModelIndex(), destination
            )

    def end(self, op: ListOp) -> None:
        if isinstance(op, InsertOp):
            self.endInsertRows()
        elif isinstance(op, RemoveOp):
            self.endRemoveRows()
        elif isinstance(op, MoveOp):
            if self._move_open:
                self.endMoveRows()
                self._move_open = False
        elif isinstance(op, ChangeOp):
            top = self.index(op.index, 0)
            bottom = self.index(op.index + op.count - 1, 0)
            self.dataChanged.emit(top, bottom)

    def _on_load_states(self, states: CombinedLoadStates) -> None:
        self.loadStatesChanged.emit(states)

    # ------------------------------------------------------------------
    # Qt model implementation
    # ------------------------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():  # pragma: no cover - tree fallback
            return 0
        return self._presenter.item_count()

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < self._presenter.item_count()):
            return None
        movie: Optional[Movie] = self._presenter.item_at(index.row())
        if role == Roles.IS_PLACEHOLDER:
            return movie is None
        if movie is None:
            return PLACEHOLDER_TEXT if role == Qt.DisplayRole else None
        if role in (Qt.DisplayRole, Roles.TITLE):
            return movie.title
        if role == Qt.ToolTipRole or role == Roles.OVERVIEW:
            return movie.overview
        if role == Roles.MOVIE_ID:
            return movie.id
        if role == Roles.POSTER_URL:
            return movie.poster_url()
        if role == Roles.RELEASE_DATE:
            return movie.release_date
        if role == Roles.VOTE_AVERAGE:
            return movie.vote_average
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return role_names(super().roleNames())

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    @Slot()
    def retry(self) -> None:
        self._presenter.retry()

    @Slot()
    def refresh(self) -> None:
        self._presenter.refresh()
