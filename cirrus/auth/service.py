"""Entry point for adding a remote: validate, authenticate, commit."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import threading
import webbrowser
from collections.abc import Callable

from cirrus.config import AppConfig
from cirrus.errors import LoginError
from cirrus.providers import CredentialInput, LoginField, Provider
from cirrus.rclone import RcloneClient

from .commit import DEFAULT_RULES, ClassificationRules, commit
from .session import AuthSession, AuthState
from .validation import InvalidCredentials, validate_inputs

logger = logging.getLogger(__name__)


class LoginService:
    """Runs login attempts, one at a time.

    Starting a new attempt cancels and supersedes the previous one; a late
    cancel aimed at a superseded attempt is ignored.
    """

    def __init__(
        self,
        client: RcloneClient,
        config: AppConfig,
        *,
        opener: Callable[[str], object] = webbrowser.open,
        popen=subprocess.Popen,
        rules: ClassificationRules = DEFAULT_RULES,
    ) -> None:
        self._client = client
        self._config = config
        self._opener = opener
        self._popen = popen
        self._rules = rules
        self._lock = threading.Lock()
        self._active: AuthSession | None = None

    @property
    def active(self) -> AuthSession | None:
        with self._lock:
            return self._active

    def start(
        self,
        provider: Provider,
        inputs: CredentialInput,
        on_url: Callable[[str], None] | None = None,
    ) -> AuthSession:
        session = AuthSession(
            provider,
            inputs,
            self._config,
            opener=self._opener,
            on_url=on_url,
            popen=self._popen,
        )
        with self._lock:
            previous, self._active = self._active, session
        if previous is not None and not previous.state.resolved:
            # The superseded session's own loop stops and reaps its helper.
            logger.debug("Superseding unfinished %s login", previous.provider.value)
            previous.cancel()
        return session

    def cancel(self, session: AuthSession | None = None) -> bool:
        """Cancel the active attempt. Returns False for a stale or missing one."""
        with self._lock:
            active = self._active
        if active is None or (session is not None and session is not active):
            logger.debug("Ignoring cancel for a login that is no longer active")
            return False
        active.cancel()
        return True

    def validate(self, session: AuthSession) -> None:
        existing = self._client.list_remote_names()
        errors = validate_inputs(session.provider, session.inputs, existing)
        if errors:
            raise InvalidCredentials(errors)

    def login(self, session: AuthSession) -> str:
        """Run *session* to completion and return the new remote's name.

        Blocks; UI code should use :meth:`alogin`.
        """
        try:
            self.validate(session)
            name = session.inputs[LoginField.NAME]
            if session.provider.needs_browser_auth:
                credentials: str | CredentialInput = session.obtain_token()
            else:
                credentials = session.inputs
            result = commit(
                self._client, name, session.provider, credentials, self._config, self._rules
            )
        except LoginError as exc:
            session.resolve(AuthState.CANCELLED if exc.is_cancelled else AuthState.FAILED)
            raise
        except Exception:
            session.resolve(AuthState.FAILED)
            raise
        finally:
            with self._lock:
                if self._active is session:
                    self._active = None
        session.resolve(AuthState.SUCCEEDED)
        return result

    async def alogin(self, session: AuthSession) -> str:
        return await asyncio.to_thread(self.login, session)
