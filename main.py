"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
import time

from analysis_client import DashscopeVisionClient
from auto_confirm import CONSENT_MARKER, CONSENT_OWNER, ConsentAutoConfirmer
from capture_worker import ScreenCaptureWorker
from config import CONFIG_DIR, JsonConfigStore
from errors import CANCELLED, describe
from event_bus import EventBus
from feedback import FeedbackController
from haptics import ToneHaptics
from hotkey import GlobalHotkeyAdapter
from localization import lookup, supported_languages
from mirroring import primary_screen_size
from models import EventKind, HapticKind, PipelineEvent, SessionState
from session_coordinator import SessionCoordinator
from speech import Pyttsx3Speaker

try:
    from PySide6.QtCore import QObject, QSize, QTimer, Signal
    from PySide6.QtGui import QAction, QActionGroup, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger("screen_narrator")

LOG_PATH = CONFIG_DIR / "narrator.log"


def configure_logging(level: int = logging.INFO) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    try:
        LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_PATH, encoding="utf-8"))
    except OSError as exc:
        print(f"File logging disabled: {exc}", file=sys.stderr)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#7550E1"
ICON_BUSY = "#748DED"
ICON_ERROR = "#FF8800"


class UIBridge(QObject):
    trigger_signal = Signal()
    permission_signal = Signal(str)  # session id
    state_signal = Signal(str, str)  # from_state, to_state
    error_signal = Signal(str, str)  # code, message


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        config = self.config_store.snapshot()
        logger.info("Starting with %r", config)

        self.ui = UIBridge()
        self.ui.trigger_signal.connect(self._trigger_ui)
        self.ui.permission_signal.connect(self._ask_permission_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.error_signal.connect(self._on_error_ui)

        self.bus = EventBus()
        self.speaker = Pyttsx3Speaker(rate_multiplier=config.speech_rate)
        try:
            if not self.speaker.start():
                logger.warning("Speech engine did not become ready; descriptions will be silent")
        except RuntimeError as exc:
            logger.warning("Speech disabled: %s", exc)
        self.haptics = ToneHaptics()
        self.feedback = FeedbackController(self.speaker, self.haptics)
        self.capture_worker = ScreenCaptureWorker(self.bus)
        self.coordinator = SessionCoordinator(
            capture_worker=self.capture_worker,
            analysis_client=DashscopeVisionClient(api_key=config.api_key, model=config.model),
            feedback=self.feedback,
            bus=self.bus,
            request_permission=self.ui.permission_signal.emit,
            config_provider=self.config_store.snapshot,
            on_state_change=self._on_state_change,
            on_error=self._on_error,
        )
        self.auto_confirmer = ConsentAutoConfirmer(
            enabled=config.auto_confirm,
            screen_size=self._screen_size,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=config.hotkey)
        self._consent_box: QMessageBox | None = None

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self._setup_menu(config.language)
        self.tray.show()
        self.bus.start()
        self.haptics.play(HapticKind.DOUBLE)

    def _setup_menu(self, language: str) -> None:
        menu = QMenu()
        strings = lookup(language)

        self.read_action = QAction(strings.ui_label.replace("\n", " "), menu)
        self.read_action.triggered.connect(self._trigger_ui)
        menu.addAction(self.read_action)
        menu.addSeparator()

        language_menu = menu.addMenu("Language")
        group = QActionGroup(language_menu)
        for code in supported_languages():
            action = QAction(code, language_menu, checkable=True)
            action.setChecked(code == strings.language_code)
            action.triggered.connect(lambda _checked=False, c=code: self._set_language(c))
            group.addAction(action)
            language_menu.addAction(action)

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        self.auto_confirm_action = QAction("Auto-confirm capture prompt", menu, checkable=True)
        self.auto_confirm_action.setChecked(self.auto_confirmer.enabled)
        self.auto_confirm_action.toggled.connect(self._set_auto_confirm)
        menu.addAction(self.auto_confirm_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)
        self.tray.setToolTip(f"Screen Narrator ({strings.language_code})")

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self.coordinator.replace_analysis_client(
            DashscopeVisionClient(api_key=value, model=self.config_store.get_model())
        )
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _set_language(self, code: str) -> None:
        self.config_store.set_language(code)
        strings = lookup(code)
        self.read_action.setText(strings.ui_label.replace("\n", " "))
        self.tray.setToolTip(f"Screen Narrator ({strings.language_code})")

    def _set_auto_confirm(self, enabled: bool) -> None:
        self.config_store.set_auto_confirm(enabled)
        self.auto_confirmer.enabled = enabled

    def _screen_size(self) -> tuple[int, int]:
        screen = self.app.primaryScreen()
        if screen is not None:
            geom = screen.geometry()
            return geom.width(), geom.height()
        return primary_screen_size()

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_error(self, code: str, message: str) -> None:
        logger.info("Session error %s: %s", code, message)
        self.ui.error_signal.emit(code, message)

    def _on_hotkey_press(self) -> None:
        self.ui.trigger_signal.emit()

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _trigger_ui(self) -> None:
        if self.feedback.stop_speaking():
            return
        self.coordinator.trigger(self.config_store.get_language())

    def _ask_permission_ui(self, session_id: str) -> None:
        box = QMessageBox(
            QMessageBox.Question,
            "Screen capture",
            f"Start capturing your screen with {CONSENT_MARKER}",
            QMessageBox.Yes | QMessageBox.No,
        )
        box.setDefaultButton(QMessageBox.Yes)
        box.finished.connect(lambda result: self._on_consent(session_id, result))
        self._consent_box = box
        box.open()
        self._anchor_bottom_right(box)
        QTimer.singleShot(
            300,
            lambda: self.auto_confirmer.on_window_state_changed(CONSENT_OWNER, [box.text()]),
        )

    def _anchor_bottom_right(self, box: QMessageBox) -> None:
        width, height = self._screen_size()
        box.adjustSize()
        box.move(max(0, width - box.width()), max(0, height - box.height()))

    def _on_consent(self, session_id: str, result: int) -> None:
        granted = result == QMessageBox.Yes
        self._consent_box = None
        payload = {"session_id": session_id, "granted_ms": int(time.time() * 1000)} if granted else None
        self.bus.publish(
            PipelineEvent(
                kind=EventKind.PERMISSION_RESULT,
                session_id=session_id,
                granted=granted,
                grant_payload=payload,
            )
        )

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        state = SessionState(to_state)
        if state.is_active:
            self.read_action.setEnabled(False)
            self.tray.setIcon(_create_icon(ICON_BUSY))
        elif state == SessionState.FAILED:
            self.read_action.setEnabled(True)
            self.tray.setIcon(_create_icon(ICON_ERROR))
        else:
            self.read_action.setEnabled(True)
            self.tray.setIcon(_create_icon(ICON_IDLE))

    def _on_error_ui(self, code: str, message: str) -> None:
        if code == CANCELLED:
            return
        self.tray.showMessage("Screen Narrator", describe(code), QSystemTrayIcon.Warning, 3000)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_trigger=self._on_hotkey_press)
        except Exception as exc:
            logger.warning("Hotkey disabled: %s", exc)
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.coordinator.shutdown()
        self.bus.stop()
        self.speaker.shutdown()
        self.app.quit()


def main() -> int:
    configure_logging()
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
