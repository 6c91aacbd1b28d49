"""
Main window: left sidebar (source, settings, start/stop), center video, right tabs
(readout, results, logs, export).
"""

from __future__ import annotations

import json
import logging
from typing import Any

import cv2
import numpy as np
from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import (
    QComboBox,
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from core.camera_list import get_camera_list
from core.capture import VideoCaptureSource
from core.clock import ThreadFrameClock
from core.config import TrackerConfig
from core.coordinator import FrameCoordinator
from core.errors import CaptureError, ModelLoadError
from core.models import Readout, TickResult
from services import create_services, init_services
from services.base import DetectionService, PoseService
from ui.panels import LogsPanel, QtLogHandler, ReadoutPanel, ResultsPanel

logger = logging.getLogger(__name__)


class ServiceInitWorker(QObject):
    """Loads both models in a background thread so the UI stays responsive."""

    init_done = Signal(bool, str)  # success, error_message

    def __init__(
        self,
        detector: DetectionService,
        pose: PoseService,
        config: TrackerConfig,
    ) -> None:
        super().__init__()
        self._services = (detector, pose)
        self._config = config

    def run(self) -> None:
        try:
            init_services(self._services, self._config)
        except ModelLoadError as e:
            self.init_done.emit(False, str(e))
            return
        self.init_done.emit(True, "")


class TrackerSignals(QObject):
    """Carries coordinator callbacks from the frame clock thread to the UI thread."""

    tick_processed = Signal(object)  # TickResult
    session_stopped = Signal(object)  # Readout


def get_settings_from_widget(widget: QWidget) -> dict[str, Any]:
    """Collect current settings from a settings widget (spinboxes by objectName)."""
    out: dict[str, Any] = {}
    for child in list(widget.findChildren(QDoubleSpinBox)) + list(widget.findChildren(QSpinBox)):
        name = child.objectName()
        if name:
            val = child.value()
            if isinstance(child, QSpinBox):
                out[name] = int(val)
            else:
                out[name] = float(val)
    return out


def build_settings_widget(config: TrackerConfig, parent: QWidget | None = None) -> QWidget:
    widget = QWidget(parent)
    layout = QFormLayout(widget)
    threshold = QDoubleSpinBox()
    threshold.setRange(0.0, 1.0)
    threshold.setSingleStep(0.05)
    threshold.setValue(config.confidence_threshold)
    threshold.setObjectName("confidence_threshold")
    layout.addRow("Confidence threshold:", threshold)
    fps = QDoubleSpinBox()
    fps.setRange(1.0, 120.0)
    fps.setSingleStep(5.0)
    fps.setValue(config.target_fps)
    fps.setObjectName("target_fps")
    layout.addRow("Target FPS:", fps)
    return widget


def to_qimage(frame_bgr: np.ndarray) -> QImage:
    h, w = frame_bgr.shape[:2]
    # copy() detaches from the numpy buffer, which is reused next tick
    return QImage(frame_bgr.data, w, h, 3 * w, QImage.Format.Format_BGR888).copy()


class MainWindow(QWidget):
    """Bar tracker window: sidebar, video view, and right panels."""

    def __init__(
        self,
        config: TrackerConfig | None = None,
        detector: DetectionService | None = None,
        pose: PoseService | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle("Bar Tracker")
        self._config = config or TrackerConfig()
        if detector is None or pose is None:
            detector, pose = create_services()
        self._detector = detector
        self._pose = pose
        self._capture = VideoCaptureSource()
        self._clock = ThreadFrameClock(self._config.target_fps)
        self._signals = TrackerSignals()
        self._coordinator = FrameCoordinator(
            detector=self._detector,
            pose=self._pose,
            capture=self._capture,
            clock=self._clock,
            config=self._config,
            on_result=self._signals.tick_processed.emit,
            on_stopped=self._signals.session_stopped.emit,
        )
        self._signals.tick_processed.connect(self._on_tick_processed)
        self._signals.session_stopped.connect(self._on_session_stopped)
        self._current_frame: np.ndarray | None = None
        self._latest_results: dict[str, Any] = {}
        self._init_thread: QThread | None = None
        self._init_worker: ServiceInitWorker | None = None

        layout = QHBoxLayout(self)
        # --- Left sidebar ---
        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.addWidget(QLabel("Input"))
        input_hint = QLabel("Select a camera, or open a recorded lift.")
        input_hint.setWordWrap(True)
        input_hint.setStyleSheet("color: #666; font-size: 11px;")
        sidebar_layout.addWidget(input_hint)
        self._camera_combo = QComboBox()
        self._camera_combo.setToolTip("Camera to track from.")
        sidebar_layout.addWidget(self._camera_combo)
        refresh_cam_btn = QPushButton("Refresh cameras")
        refresh_cam_btn.setToolTip("Re-detect connected cameras.")
        refresh_cam_btn.clicked.connect(self._refresh_cameras)
        sidebar_layout.addWidget(refresh_cam_btn)
        self._open_video_btn = QPushButton("Open Video")
        self._open_video_btn.setToolTip("Use a video file instead of the camera.")
        self._open_video_btn.clicked.connect(self._on_open_video)
        sidebar_layout.addWidget(self._open_video_btn)
        self._use_camera_btn = QPushButton("Use Camera")
        self._use_camera_btn.clicked.connect(self._on_use_camera)
        sidebar_layout.addWidget(self._use_camera_btn)
        self._settings_widget = build_settings_widget(self._config)
        settings_group = QGroupBox("Settings")
        settings_inner = QVBoxLayout()
        settings_inner.addWidget(self._settings_widget)
        settings_group.setLayout(settings_inner)
        sidebar_layout.addWidget(settings_group)
        self._start_btn = QPushButton("Start Tracking")
        self._start_btn.clicked.connect(self._on_start)
        sidebar_layout.addWidget(self._start_btn)
        self._stop_btn = QPushButton("Stop Tracking")
        self._stop_btn.clicked.connect(self._on_stop)
        self._stop_btn.setEnabled(False)
        sidebar_layout.addWidget(self._stop_btn)
        self._model_status = QLabel("Loading models...")
        self._model_status.setStyleSheet("color: #666; font-size: 11px;")
        sidebar_layout.addWidget(self._model_status)
        sidebar_layout.addStretch()
        layout.addWidget(sidebar)

        # --- Center: video ---
        self._video_label = QLabel()
        self._video_label.setMinimumSize(self._config.surface_width, self._config.surface_height)
        self._video_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._video_label.setStyleSheet("background-color: #1e1e1e; color: #888;")
        self._video_label.setText("No video")
        layout.addWidget(self._video_label, stretch=1)

        # --- Right: tabs ---
        tabs = QTabWidget()
        self._readout_panel = ReadoutPanel()
        tabs.addTab(self._readout_panel, "Readout")
        self._results_panel = ResultsPanel()
        tabs.addTab(self._results_panel, "Results")
        self._logs_panel = LogsPanel()
        tabs.addTab(self._logs_panel, "Logs")
        export_panel = QWidget()
        export_layout = QVBoxLayout(export_panel)
        save_frame_btn = QPushButton("Save Frame (PNG)")
        save_frame_btn.clicked.connect(self._on_save_frame)
        save_json_btn = QPushButton("Save Results JSON")
        save_json_btn.clicked.connect(self._on_save_json)
        export_layout.addWidget(save_frame_btn)
        export_layout.addWidget(save_json_btn)
        export_layout.addStretch()
        tabs.addTab(export_panel, "Export")
        layout.addWidget(tabs)

        self._log_handler = QtLogHandler(self._logs_panel)
        logging.getLogger().addHandler(self._log_handler)

        self._refresh_cameras()
        self._load_models()
        self.resize(1200, 700)

    # --- setup ---

    def _refresh_cameras(self) -> None:
        cameras = get_camera_list()
        self._camera_combo.clear()
        for cam in cameras:
            self._camera_combo.addItem(cam.name, cam.index)
        if not cameras:
            self._camera_combo.addItem("No cameras found", 0)
            logger.warning("No cameras detected. Connect a camera and click Refresh cameras.")
        else:
            index = self._camera_combo.findData(self._config.camera_index)
            if index >= 0:
                self._camera_combo.setCurrentIndex(index)

    def _load_models(self) -> None:
        logger.info("Loading models (may take a few seconds)...")
        self._init_worker = ServiceInitWorker(self._detector, self._pose, self._config)
        self._init_thread = QThread()
        self._init_worker.moveToThread(self._init_thread)
        self._init_thread.started.connect(self._init_worker.run)
        self._init_worker.init_done.connect(self._on_models_loaded)
        self._init_thread.start()

    @Slot(bool, str)
    def _on_models_loaded(self, success: bool, error_msg: str) -> None:
        if self._init_thread is not None:
            self._init_thread.quit()
            self._init_thread.wait(2000)
            self._init_thread = None
        self._init_worker = None
        if not success:
            self._model_status.setText("Model load failed")
            QMessageBox.critical(self, "Model load failed", error_msg)
            return
        self._model_status.setText("Models loaded")
        logger.info("Models loaded successfully")

    # --- input ---

    def _on_open_video(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Video", "", "Video (*.mp4 *.avi *.mov *.mkv);;All (*)"
        )
        if not path:
            return
        self._capture.select_file(path)
        logger.info("Video source: %s (applies on next start)", path)

    def _on_use_camera(self) -> None:
        self._capture.select_file(None)
        logger.info("Video source: camera (applies on next start)")

    # --- start / stop ---

    def _on_start(self) -> None:
        settings = get_settings_from_widget(self._settings_widget)
        cam_index = self._camera_combo.currentData()
        settings["camera_index"] = int(cam_index) if cam_index is not None else 0
        self._config = self._config.with_settings(settings)
        self._coordinator.set_config(self._config)
        self._clock.set_fps(self._config.target_fps)
        try:
            self._coordinator.start()
        except ModelLoadError as e:
            QMessageBox.warning(self, "Models not ready", str(e))
            return
        except CaptureError as e:
            QMessageBox.warning(self, "Camera unavailable", str(e))
            return
        self._readout_panel.reset()
        self._results_panel.update_results(None)
        self._start_btn.setText("Restart Tracking")
        self._stop_btn.setEnabled(True)

    def _on_stop(self) -> None:
        self._coordinator.stop()

    @Slot(object)
    def _on_tick_processed(self, result: TickResult) -> None:
        if result.session_id != self._coordinator.session_id:
            return
        self._latest_results = result.to_dict()
        self._readout_panel.update_readout(result.readout)
        self._results_panel.update_results(self._latest_results)
        if result.frame is not None:
            self._current_frame = result.frame
            self._video_label.setPixmap(QPixmap.fromImage(to_qimage(result.frame)).scaled(
                self._video_label.size(),
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            ))

    @Slot(object)
    def _on_session_stopped(self, readout: Readout) -> None:
        self._readout_panel.update_readout(readout)
        self._start_btn.setText("Start Tracking")
        self._stop_btn.setEnabled(False)

    # --- export ---

    def _on_save_frame(self) -> None:
        if self._current_frame is None:
            logger.info("No frame to save.")
            return
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Frame", "", "PNG (*.png);;All (*)"
        )
        if not path:
            return
        if cv2.imwrite(path, self._current_frame):
            logger.info("Saved frame: %s", path)
        else:
            logger.error("Failed to save: %s", path)

    def _on_save_json(self) -> None:
        if not self._latest_results:
            logger.info("No results to save.")
            return
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Results JSON", "", "JSON (*.json);;All (*)"
        )
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self._latest_results, f, indent=2, default=str)
        except OSError as e:
            logger.error("Failed to save JSON: %s", e)
            return
        logger.info("Saved results: %s", path)

    def closeEvent(self, event) -> None:
        if self._init_thread is not None:
            self._init_thread.quit()
            self._init_thread.wait(5000)
        self._coordinator.close()
        self._clock.close()
        self._detector.close()
        self._pose.close()
        logging.getLogger().removeHandler(self._log_handler)
        event.accept()
