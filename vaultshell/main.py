"""
Main entry point for the VaultShell desktop shell.

LEGAL NOTICE:
This tool is for personal use only. It must operate only on the device where
it is installed and only with the explicit consent of the device owner.
"""

import os
import sys
import signal
import logging
from typing import Optional
from PyQt5.QtWidgets import QApplication
from PyQt5.QtCore import Qt

from vaultshell import config
from vaultshell.bridge import Bridge, ControlChannel, register_init_db_handler
from vaultshell.client import BackendClient
from vaultshell.errors import ProcessLaunchFailure
from vaultshell.supervisor import BackendSupervisor
from vaultshell.ui import SetupWindow, show_launch_failure

logger = logging.getLogger(__name__)


class VaultShellApp:
    """Main application class: owns the backend supervisor and the UI."""

    def __init__(self, supervisor: Optional[BackendSupervisor] = None):
        """Initialize the application."""
        self.app = QApplication.instance() or QApplication(sys.argv)
        self.app.setApplicationName(config.APP_NAME)
        self.app.setOrganizationName(config.APP_NAME)
        self.app.setStyle(config.APP_STYLE)

        self.supervisor = supervisor or BackendSupervisor()
        self.control = ControlChannel()
        self.bridge = Bridge(self.control)
        self.client = BackendClient(self.bridge.backend_url)
        register_init_db_handler(self.control, self.client)

        self.window: Optional[SetupWindow] = None

        self.app.aboutToQuit.connect(self.cleanup)

        # Handle Ctrl+C gracefully
        signal.signal(signal.SIGINT, signal.SIG_DFL)

    def start_backend(self) -> bool:
        """Start the backend once and wait for it to listen. Returns False if it could not be launched."""
        try:
            self.supervisor.start()
        except ProcessLaunchFailure as e:
            logger.critical(f"Backend launch failed: {e}")
            show_launch_failure(str(e))
            return False
        return True

    def show_window(self) -> None:
        """Create the setup window on first activation, raise it afterwards."""
        if self.window is None:
            self.window = SetupWindow(self.bridge, self.client)
            self.window.show()
            self.window.start_bootstrap()
        else:
            self.window.show()
            self.window.raise_()
            self.window.activateWindow()

    def run(self) -> int:
        """Run the application."""
        if not self.start_backend():
            return 1
        self.show_window()
        return self.app.exec_()

    def cleanup(self) -> None:
        """Clean up resources."""
        self.supervisor.stop()


def main():
    """Main entry point."""
    level_name = os.getenv("VAULTSHELL_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO),
                        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
    # Enable high DPI scaling
    if hasattr(Qt, 'AA_EnableHighDpiScaling'):
        QApplication.setAttribute(Qt.AA_EnableHighDpiScaling, True)
    if hasattr(Qt, 'AA_UseHighDpiPixmaps'):
        QApplication.setAttribute(Qt.AA_UseHighDpiPixmaps, True)

    # Create and run application
    app = VaultShellApp()

    try:
        return app.run()
    finally:
        app.cleanup()


if __name__ == "__main__":
    sys.exit(main())
