"""
User interface for the VaultShell desktop shell.

Backend calls run on QThread workers, each driving its own asyncio loop, so
the Qt event loop stays responsive. Results come back through signals.
"""

import asyncio
import logging
from typing import Optional

from PyQt5.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QLabel, QLineEdit, QPushButton,
    QMessageBox, QStackedWidget, QProgressBar, QFormLayout
)
from PyQt5.QtCore import Qt, pyqtSignal, QThread

from .bootstrap import SetupForm, SetupState, SetupStateMachine
from .bridge import Bridge
from .client import BackendClient
from . import config

logger = logging.getLogger(__name__)

# Longest a worker can block window close: one request timeout.
CLOSE_WAIT_MS = int(config.REQUEST_TIMEOUT_SECONDS * 1000)


class BootstrapWorker(QThread):
    """Worker thread for the bootstrap sequence."""

    finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, machine: SetupStateMachine):
        super().__init__()
        self.machine = machine

    def run(self):
        """Run the bootstrap sequence."""
        try:
            outcome = asyncio.run(self.machine.activate())
            self.finished.emit(outcome)
        except Exception as e:
            logger.exception("Bootstrap worker crashed")
            self.error.emit(str(e))


class SetupSubmitWorker(QThread):
    """Worker thread for a single setup submission."""

    finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, form: SetupForm, username: str, password: str):
        super().__init__()
        self.form = form
        self.username = username
        self.password = password

    def run(self):
        """Run the submission."""
        try:
            result = asyncio.run(self.form.submit(self.username, self.password))
            self.finished.emit(result)
        except Exception as e:
            logger.exception("Setup submission worker crashed")
            self.error.emit(str(e))
        finally:
            self.password = ""


class SetupWindow(QMainWindow):
    """Loading, error, setup form and login hand-off pages."""

    login_requested = pyqtSignal()

    PAGE_LOADING = 0
    PAGE_ERROR = 1
    PAGE_SETUP = 2
    PAGE_LOGIN = 3

    def __init__(self, bridge: Bridge, client: Optional[BackendClient] = None, parent=None):
        super().__init__(parent)
        self.bridge = bridge
        self.client = client or BackendClient(bridge.backend_url)
        self.machine = SetupStateMachine(self.client)
        self.form = SetupForm(self.client)
        self.bootstrap_worker: Optional[BootstrapWorker] = None
        self.submit_worker: Optional[SetupSubmitWorker] = None
        self.init_ui()

    def init_ui(self):
        """Initialize the user interface."""
        self.setWindowTitle(f"{config.APP_TITLE_PREFIX} - Setup")
        self.setMinimumSize(420, 260)

        self.pages = QStackedWidget()
        self.pages.addWidget(self._build_loading_page())
        self.pages.addWidget(self._build_error_page())
        self.pages.addWidget(self._build_setup_page())
        self.pages.addWidget(self._build_login_page())
        self.setCentralWidget(self.pages)

    def _build_loading_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout()
        layout.setAlignment(Qt.AlignCenter)
        busy = QProgressBar()
        busy.setRange(0, 0)
        layout.addWidget(busy)
        label = QLabel("Initializing...")
        label.setAlignment(Qt.AlignCenter)
        layout.addWidget(label)
        page.setLayout(layout)
        return page

    def _build_error_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout()
        layout.setAlignment(Qt.AlignCenter)
        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: red")
        self.error_label.setWordWrap(True)
        self.error_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.error_label)
        page.setLayout(layout)
        return page

    def _build_setup_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout()

        title = QLabel(config.APP_NAME)
        title.setAlignment(Qt.AlignCenter)
        font = title.font()
        font.setPointSize(16)
        font.setBold(True)
        title.setFont(font)
        layout.addWidget(title)

        form_layout = QFormLayout()
        self.username_input = QLineEdit()
        form_layout.addRow("Username:", self.username_input)
        self.password_input = QLineEdit()
        self.password_input.setEchoMode(QLineEdit.Password)
        self.password_input.returnPressed.connect(self.submit_setup)
        form_layout.addRow("Master Password:", self.password_input)
        layout.addLayout(form_layout)

        self.setup_button = QPushButton("Set Up Account")
        self.setup_button.clicked.connect(self.submit_setup)
        layout.addWidget(self.setup_button)

        self.status_label = QLabel("")
        self.status_label.setStyleSheet("color: red")
        self.status_label.setWordWrap(True)
        layout.addWidget(self.status_label)

        layout.addStretch()
        page.setLayout(layout)
        return page

    def _build_login_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout()
        layout.setAlignment(Qt.AlignCenter)
        label = QLabel("Your vault is set up. Log in to continue.")
        label.setAlignment(Qt.AlignCenter)
        layout.addWidget(label)
        page.setLayout(layout)
        return page

    # Bootstrap

    def start_bootstrap(self):
        """Run the bootstrap sequence in the background."""
        if self.bootstrap_worker is not None and self.bootstrap_worker.isRunning():
            return
        self.pages.setCurrentIndex(self.PAGE_LOADING)
        self.bootstrap_worker = BootstrapWorker(self.machine)
        self.bootstrap_worker.finished.connect(self.on_bootstrap_finished)
        self.bootstrap_worker.error.connect(self.on_bootstrap_error)
        self.bootstrap_worker.start()

    def on_bootstrap_finished(self, outcome):
        """Route to the page matching the bootstrap outcome."""
        if outcome.state is SetupState.LOGIN_REDIRECT:
            self.go_to_login()
        elif outcome.state is SetupState.ERROR_DISPLAY:
            self.show_error(outcome.error_message or config.MSG_STATUS_FAILED)
        else:
            self.pages.setCurrentIndex(self.PAGE_SETUP)
            self.username_input.setFocus()

    def on_bootstrap_error(self, message: str):
        self.show_error(config.MSG_STATUS_FAILED)

    def show_error(self, message: str):
        self.error_label.setText(message)
        self.pages.setCurrentIndex(self.PAGE_ERROR)

    def go_to_login(self):
        self.pages.setCurrentIndex(self.PAGE_LOGIN)
        self.login_requested.emit()

    # Setup submission

    def submit_setup(self):
        """Validate, hash and submit the master password."""
        if self.form.in_flight or (self.submit_worker is not None and self.submit_worker.isRunning()):
            return

        self.status_label.setText("")
        self.setup_button.setEnabled(False)
        self.setup_button.setText("Setting up...")

        self.submit_worker = SetupSubmitWorker(
            self.form, self.username_input.text(), self.password_input.text()
        )
        self.submit_worker.finished.connect(self.on_submit_finished)
        self.submit_worker.error.connect(self.on_submit_error)
        self.submit_worker.start()

    def _release_form(self):
        self.setup_button.setEnabled(True)
        self.setup_button.setText("Set Up Account")

    def on_submit_finished(self, result):
        self._release_form()
        if result.succeeded:
            self.password_input.clear()
            QMessageBox.information(self, "Success", result.message or config.MSG_SETUP_SUCCESS)
            self.go_to_login()
        else:
            self.status_label.setText(result.message or config.MSG_SETUP_REJECTED)

    def on_submit_error(self, message: str):
        self._release_form()
        self.status_label.setText(config.MSG_SETUP_REJECTED)

    def closeEvent(self, event):
        for worker in (self.bootstrap_worker, self.submit_worker):
            if worker is not None and worker.isRunning():
                if not worker.wait(CLOSE_WAIT_MS):
                    logger.warning(f"{type(worker).__name__} still running after {CLOSE_WAIT_MS} ms, closing anyway.")
        super().closeEvent(event)


def show_launch_failure(message: str) -> None:
    """Fatal startup error: the backend could not be launched."""
    QMessageBox.critical(None, f"{config.APP_NAME} - Startup Error", f"{config.MSG_LAUNCH_FAILED}\n\n{message}")
