"""
Right-side panels: Readout (bar/arm text fields), Results (JSON), Logs.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import (
    QFormLayout,
    QLabel,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from core.models import Readout


def _pretty_json(obj: Any) -> str:
    """Pretty-print dict/list for display."""
    try:
        return json.dumps(obj, indent=2, default=str)
    except (TypeError, ValueError):
        return str(obj)


class ReadoutPanel(QWidget):
    """Bar coordinates, velocity, elapsed time and arm joints of the latest tick."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QFormLayout(self)
        self._bar_label = QLabel()
        self._velocity_label = QLabel()
        self._elapsed_label = QLabel()
        self._arms_label = QLabel()
        self._velocity_label.setStyleSheet("font-size: 18px; font-weight: bold;")
        layout.addRow("Bar coordinates:", self._bar_label)
        layout.addRow("Velocity:", self._velocity_label)
        layout.addRow("Time between points:", self._elapsed_label)
        layout.addRow("Arm joints:", self._arms_label)
        self.reset()

    def update_readout(self, readout: Readout) -> None:
        self._bar_label.setText(readout.bar_coordinates)
        self._velocity_label.setText(readout.velocity)
        self._elapsed_label.setText(readout.elapsed)
        self._arms_label.setText(readout.arm_joints)

    def reset(self) -> None:
        self.update_readout(Readout())


class ResultsPanel(QWidget):
    """Shows the last tick as pretty-printed JSON, updated in real time."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self._text = QPlainTextEdit(self)
        self._text.setReadOnly(True)
        self._text.setPlaceholderText("Results will appear here while tracking.")
        layout.addWidget(self._text, stretch=1)

    def update_results(self, results: dict[str, Any] | None) -> None:
        if results is None:
            self._text.setPlainText("")
            return
        self._text.setPlainText(_pretty_json(results))


class LogsPanel(QWidget):
    """Shows application log messages and errors."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._text = QPlainTextEdit(self)
        self._text.setReadOnly(True)
        self._text.setMaximumBlockCount(2000)
        layout.addWidget(self._text)

    def append(self, message: str) -> None:
        self._text.appendPlainText(message)
        # Auto-scroll to bottom
        scrollbar = self._text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def clear(self) -> None:
        self._text.clear()


class _LogEmitter(QObject):
    message = Signal(str)


class QtLogHandler(logging.Handler):
    """logging handler that forwards formatted records to the Logs panel via a Qt signal (thread-safe)."""

    def __init__(self, panel: LogsPanel, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._emitter = _LogEmitter()
        self._emitter.message.connect(panel.append)
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._emitter.message.emit(self.format(record))
        except RuntimeError:
            # Panel already destroyed during shutdown.
            self.handleError(record)
