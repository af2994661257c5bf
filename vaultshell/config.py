"""
Configuration constants for the VaultShell application.
"""

import os
import json
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)

# Application Metadata
APP_VERSION = "0.3"  # Use: Current version of the application. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "VaultShell"  # Use: Full name of the application. Type: str. Range: Any valid string.
APP_TITLE_PREFIX = f"{APP_NAME} v{APP_VERSION}"  # Use: Prefix for the application window titles, combining name and version. Type: str (f-string). Range: Derived from APP_NAME and APP_VERSION.
APP_STYLE = 'Fusion'  # Use: PyQt5 application style. Type: str. Range: Valid PyQt5 style names (e.g., 'Fusion', 'Windows', 'Macintosh').

# Installation Layout
INSTALL_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))  # Use: Root directory of the installed application, the base for resolving the bundled interpreter. Type: str. Range: Absolute directory path.
VENV_DIR_NAME = "venv"  # Use: Name of the virtual environment directory shipped next to the application. Type: str. Range: Any valid directory name.
BACKEND_ENTRY_POINT = os.path.join("vaultshell", "backend", "server.py")  # Use: Backend script path relative to INSTALL_DIR, passed explicitly to the interpreter. Type: str. Range: Valid relative path.
STATIC_CONFIG_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.json")  # Use: Static configuration file read once when the bridge is constructed. Type: str. Range: Valid file path.

# Backend Endpoint
BACKEND_HOST = "127.0.0.1"  # Use: Host the backend process binds to. Type: str. Range: Loopback address only.
BACKEND_PORT = 5000  # Use: Fixed port the backend process listens on. Type: int. Range: 1024 to 65535.
DEFAULT_BACKEND_BASE_URL = f"http://{BACKEND_HOST}:{BACKEND_PORT}"  # Use: Base URL used when the static config does not provide one. Type: str (f-string). Range: Derived from BACKEND_HOST and BACKEND_PORT.
BACKEND_BASE_URL_KEY = "BACKEND_BASE_URL"  # Use: Key holding the base URL inside STATIC_CONFIG_FILE. Type: str. Range: Any string.
BACKEND_SHUTDOWN_GRACE_SECONDS = 5  # Use: Seconds to wait for the backend to exit after terminate() before killing it. Type: int. Range: Positive integer.
BACKEND_STARTUP_TIMEOUT_SECONDS = 20.0  # Use: Deadline for a freshly spawned backend to accept connections before launch counts as failed. Type: float. Range: Positive number.
BACKEND_READY_POLL_SECONDS = 0.1  # Use: Interval between readiness probes while the backend starts. Type: float. Range: Positive number, well below the startup timeout.

# Backend API Endpoints
ENDPOINT_INIT_DB = "/init_db"  # Use: Provisions the backend data store. Idempotent. Type: str. Range: URL path.
ENDPOINT_CHECK_SETUP = "/check_setup_complete"  # Use: Reports whether a master password exists. Type: str. Range: URL path.
ENDPOINT_ADD_MASTER_PASSWORD = "/add_master_password"  # Use: Stores the hashed master credential. Type: str. Range: URL path.
REQUEST_TIMEOUT_SECONDS = 10.0  # Use: Per-request timeout applied to every backend call. A timeout counts as a transport failure. Type: float. Range: Positive number.

# Bridge Channels
CHANNEL_INIT_DB = "init-db"  # Use: Control-side invoke channel that provisions the backend store. Type: str. Range: Any string agreed by both sides.

# Bootstrap Behaviour
STOP_ON_INIT_FAILURE = False  # Use: When True a failed database initialization skips the setup status check. Type: bool. Range: True or False.

# Password Policy
PASSWORD_MIN_LENGTH_EXCLUSIVE = 8  # Use: Master passwords must be strictly longer than this. Type: int. Range: Positive integer.
PASSWORD_SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'  # Use: Symbols of which a master password must contain at least one. Type: str. Range: Any string of characters.

# User-facing Messages
MSG_POLICY_FAILED = "Password must be longer than 8 characters, include a number, and a special character."  # Use: Single validation message for any policy violation. Type: str. Range: Any descriptive string.
MSG_INIT_REJECTED = "Failed to initialize the database. Please restart the app."  # Use: Shown when /init_db answers with a non-success status. Type: str. Range: Any descriptive string.
MSG_INIT_UNREACHABLE = "An error occurred while initializing the database."  # Use: Shown when /init_db cannot be reached. Type: str. Range: Any descriptive string.
MSG_STATUS_FAILED = "An error occurred while checking the setup status."  # Use: Shown when the setup status cannot be determined. Type: str. Range: Any descriptive string.
MSG_SETUP_REJECTED = "Error during setup. Please try again."  # Use: Fallback when the backend rejects setup without a message. Type: str. Range: Any descriptive string.
MSG_SETUP_UNREACHABLE = "An error occurred during setup. Please check your internet connection."  # Use: Shown when the setup request cannot reach the backend. Type: str. Range: Any descriptive string.
MSG_SETUP_SUCCESS = "Setup successful!"  # Use: Confirmation shown after the master password is stored. Type: str. Range: Any descriptive string.
MSG_LAUNCH_FAILED = "The vault backend could not be started. VaultShell will now exit."  # Use: Fatal message shown when the backend process fails to launch. Type: str. Range: Any descriptive string.


def load_static_config(path: str = STATIC_CONFIG_FILE) -> Dict[str, Any]:
    """
    Load the static configuration file.

    Missing or malformed files yield the defaults so the shell can still
    reach the bundled backend.
    """
    data: Dict[str, Any] = {BACKEND_BASE_URL_KEY: DEFAULT_BACKEND_BASE_URL}
    if not os.path.exists(path):
        logger.debug(f"Static config {path} not found, using defaults.")
        return data

    try:
        with open(path, 'r', encoding='utf-8') as f:
            loaded = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to read static config {path}: {e}")
        return data

    if isinstance(loaded, dict):
        data.update(loaded)
    else:
        logger.warning(f"Static config {path} is not a JSON object, ignoring it.")
    return data
