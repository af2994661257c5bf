"""
First-run bootstrap sequence and master password setup.

Activation runs two steps in a fixed order: provision the backend store,
then ask whether setup is complete. The outcome decides whether the UI
shows the setup form, hands off to login, or shows an error.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from . import config
from .client import BackendClient
from .errors import BackendRejection, SubmissionInFlight, TransportFailure, ValidationFailure
from .policy import MasterCredential

logger = logging.getLogger(__name__)


class SetupState(Enum):
    LOADING = "LOADING"
    SETUP_FORM = "SETUP_FORM"
    LOGIN_REDIRECT = "LOGIN_REDIRECT"
    ERROR_DISPLAY = "ERROR_DISPLAY"


@dataclass(frozen=True)
class BootstrapOutcome:
    state: SetupState
    error_message: Optional[str] = None


@dataclass(frozen=True)
class SubmissionResult:
    state: SetupState
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is SetupState.LOGIN_REDIRECT


class SetupStateMachine:
    """Runs the bootstrap sequence once per activation."""

    def __init__(self, client: BackendClient, stop_on_init_failure: bool = config.STOP_ON_INIT_FAILURE):
        self.client = client
        self.stop_on_init_failure = stop_on_init_failure
        self.state = SetupState.LOADING
        self._observers: List[Callable[[SetupState], None]] = []

    def on_transition(self, observer: Callable[[SetupState], None]) -> None:
        self._observers.append(observer)

    def _enter(self, state: SetupState) -> None:
        self.state = state
        logger.debug(f"Bootstrap state -> {state.value}")
        for observer in list(self._observers):
            observer(state)

    async def _initialize_store(self) -> Optional[str]:
        """Step one. Returns an error message, or None on success."""
        try:
            await self.client.init_db()
        except BackendRejection as e:
            logger.error(f"Database initialization rejected: HTTP {e.status_code}")
            return config.MSG_INIT_REJECTED
        except TransportFailure as e:
            logger.error(f"Database initialization failed: {e}")
            return config.MSG_INIT_UNREACHABLE
        return None

    async def _query_setup_status(self) -> bool:
        """Step two. Raises on any failure to obtain the status."""
        return await self.client.check_setup_complete()

    async def activate(self) -> BootstrapOutcome:
        """
        Run the bootstrap sequence.

        The status query always runs after initialization has resolved,
        even when initialization failed, unless stop_on_init_failure is set.
        A backend that reports setup as complete wins over an init error.
        """
        self._enter(SetupState.LOADING)

        error_message = await self._initialize_store()
        if error_message and self.stop_on_init_failure:
            self._enter(SetupState.ERROR_DISPLAY)
            return BootstrapOutcome(SetupState.ERROR_DISPLAY, error_message)

        try:
            setup_complete = await self._query_setup_status()
        except (TransportFailure, BackendRejection) as e:
            logger.error(f"Error checking setup status: {e}")
            error_message = config.MSG_STATUS_FAILED
        else:
            if setup_complete:
                self._enter(SetupState.LOGIN_REDIRECT)
                return BootstrapOutcome(SetupState.LOGIN_REDIRECT)

        if error_message:
            self._enter(SetupState.ERROR_DISPLAY)
            return BootstrapOutcome(SetupState.ERROR_DISPLAY, error_message)

        self._enter(SetupState.SETUP_FORM)
        return BootstrapOutcome(SetupState.SETUP_FORM)


class SetupForm:
    """Validates, hashes and submits the master credential. One submission at a time."""

    def __init__(self, client: BackendClient):
        self.client = client
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(self, username: str, password: str) -> SubmissionResult:
        """
        Submit the setup form.

        Raises:
            SubmissionInFlight: If a previous submission has not finished
        """
        if self._in_flight:
            raise SubmissionInFlight("A setup submission is already in progress")

        try:
            credential = MasterCredential.from_input(username, password)
        except ValidationFailure as e:
            return SubmissionResult(SetupState.SETUP_FORM, str(e))

        self._in_flight = True
        try:
            await self.client.add_master_password(credential)
        except BackendRejection as e:
            logger.warning(f"Master password rejected: HTTP {e.status_code}")
            return SubmissionResult(SetupState.SETUP_FORM, e.message or config.MSG_SETUP_REJECTED)
        except TransportFailure as e:
            logger.error(f"Master password submission failed: {e}")
            return SubmissionResult(SetupState.SETUP_FORM, config.MSG_SETUP_UNREACHABLE)
        finally:
            self._in_flight = False

        logger.info(f"Master password set for user '{credential.username}'")
        return SubmissionResult(SetupState.LOGIN_REDIRECT, config.MSG_SETUP_SUCCESS)
