"""Header/footer row showing a direction's load progress or failure."""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QSizePolicy,
    QWidget,
)

from ...viewmodels.load_state_viewmodel import LoadStateMode, LoadStateViewModel
from ...viewmodels.signal import Connection


class LoadStateFooter(QWidget):
    """Spinner while loading, error message plus retry button on failure."""

    def __init__(self, view_model: LoadStateViewModel, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("loadStateFooter")
        self.setSizePolicy(QSizePolicy.Policy.Preferred, QSizePolicy.Policy.Fixed)
        self._view_model = view_model

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.setSpacing(6)

        self.progress = QProgressBar(self)
        self.progress.setObjectName("loadStateProgress")
        # An empty range renders the busy indicator.
        self.progress.setRange(0, 0)
        self.progress.setTextVisible(False)
        layout.addWidget(self.progress)

        self.message = QLabel(self)
        self.message.setObjectName("loadStateMessage")
        self.message.setWordWrap(True)
        self.message.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.message, 1)

        self.retry_button = QPushButton("Retry", self)
        self.retry_button.setObjectName("loadStateRetry")
        self.retry_button.clicked.connect(lambda _checked=False: view_model.retry())
        layout.addWidget(self.retry_button)

        self._connections: list[Connection] = [
            view_model.mode.bind(self._on_mode_changed, emit_current=True),
            view_model.message.bind(self._on_message_changed, emit_current=True),
        ]

    @property
    def view_model(self) -> LoadStateViewModel:
        return self._view_model

    def unbind(self) -> None:
        for connection in self._connections:
            connection.cancel()
        self._connections.clear()

    def _on_mode_changed(self, mode: LoadStateMode, _old: object) -> None:
        self.progress.setVisible(mode is LoadStateMode.SPINNER)
        self.message.setVisible(mode is LoadStateMode.ERROR)
        self.retry_button.setVisible(mode is LoadStateMode.ERROR)
        self.setHidden(mode is LoadStateMode.HIDDEN)

    def _on_message_changed(self, text: str, _old: object) -> None:
        self.message.setText(text)
