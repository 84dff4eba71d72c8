"""
Session store - Owner of the authenticated identity and credential pair.

The store is the only writer of the persisted credentials; the gateway
only reads the access token. It is created once by the composition root
and passed to whatever needs the session.

Lifecycle
=========

    refresh_from_server()  persisted token -> profile fetched -> session
    login()                credentials -> token pair persisted -> session
    logout()               always clears both credential slots

Any failure while restoring a persisted session is treated as an
invalid credential: the store logs out instead of surfacing an error,
so a bad token cannot trigger an endless retry loop.
"""

import logging
from dataclasses import dataclass, field

from .exceptions import ProtectedFieldError, TwoFactorRequired
from .models import PROTECTED_IDENTITY_FIELDS, Identity, LoginChallenge, LoginTokens, Session
from .ports import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    AuthBackend,
    CredentialStore,
    StateListener,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionStore:
    """
    Domain service holding the current session.

    Observers registered with subscribe() are notified after every
    change so a rendering layer can redraw without polling.
    """

    auth: AuthBackend
    credentials: CredentialStore
    session: Session | None = None
    pending_two_factor_user_id: str | None = None
    _listeners: list[StateListener] = field(default_factory=list, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def identity(self) -> Identity | None:
        return self.session.identity if self.session else None

    @property
    def is_admin(self) -> bool:
        return self.session is not None and self.session.identity.is_admin

    @property
    def awaiting_two_factor(self) -> bool:
        return self.pending_two_factor_user_id is not None

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    async def login(self, identifier: str, password: str) -> Session:
        """
        Log in with an email or username and a password.

        Args:
            identifier: Email address or username
            password: Plaintext password

        Returns:
            The new live session

        Raises:
            TwoFactorRequired: The account needs verify_two_factor() first
            TransportError: The backend refused the credentials
        """
        result = await self.auth.login(identifier, password)
        if isinstance(result, LoginChallenge):
            self.pending_two_factor_user_id = result.user_id
            self._notify()
            raise TwoFactorRequired(result.user_id)
        return self._establish(result)

    async def verify_two_factor(self, token: str) -> Session:
        """Complete the pending two-factor challenge left by login()."""
        if self.pending_two_factor_user_id is None:
            raise RuntimeError("No pending two-factor challenge")
        tokens = await self.auth.verify_two_factor(self.pending_two_factor_user_id, token)
        return self._establish(tokens)

    async def admin_login(self, identifier: str, password: str) -> Session:
        """
        Log in through the admin entry point.

        Same backend endpoint as login(); admin rights come from the role
        of the returned identity, checked by callers through is_admin.
        """
        return await self.login(identifier, password)

    def logout(self) -> None:
        """Drop the session and clear both persisted credential slots."""
        self.credentials.remove(ACCESS_TOKEN_KEY)
        self.credentials.remove(REFRESH_TOKEN_KEY)
        had_session = self.session is not None
        self.session = None
        self.pending_two_factor_user_id = None
        if had_session:
            logger.info("Session closed")
        self._notify()

    async def refresh_from_server(self) -> Identity | None:
        """
        Restore the session from a persisted credential at process start.

        Returns:
            The fetched identity, or None when there is no usable credential
        """
        access_token = self.credentials.get(ACCESS_TOKEN_KEY)
        if not access_token:
            return None
        try:
            identity = await self.auth.get_profile()
        except Exception as e:
            # Expired or invalid credential: tear down instead of surfacing.
            logger.warning("Session check failed (%s), logging out", type(e).__name__)
            self.logout()
            return None

        self.session = Session(
            access_token=access_token,
            refresh_token=self.credentials.get(REFRESH_TOKEN_KEY),
            identity=identity,
        )
        self._notify()
        return identity

    def patch_identity_locally(self, **changes: object) -> Identity:
        """
        Apply an optimistic, client-only change to the cached identity.

        Security-relevant fields (role, balance, status, ...) can only be
        changed by a server response and are refused here.

        Raises:
            ProtectedFieldError: A protected field was included
            RuntimeError: There is no live session
        """
        protected = PROTECTED_IDENTITY_FIELDS & set(changes)
        if protected:
            raise ProtectedFieldError(
                f"Fields {sorted(protected)} can only be updated by the server"
            )
        if self.session is None:
            raise RuntimeError("No live session to patch")
        identity = self.session.identity.patched(changes)
        self.session = Session(
            access_token=self.session.access_token,
            refresh_token=self.session.refresh_token,
            identity=identity,
        )
        self._notify()
        return identity

    def handle_credential_rejected(self) -> None:
        """Gateway hook: a call carrying our token got a 401."""
        logger.warning("Credential rejected by backend, logging out")
        self.logout()

    def _establish(self, tokens: LoginTokens) -> Session:
        self.credentials.set(ACCESS_TOKEN_KEY, tokens.access_token)
        if tokens.refresh_token:
            self.credentials.set(REFRESH_TOKEN_KEY, tokens.refresh_token)
        else:
            self.credentials.remove(REFRESH_TOKEN_KEY)
        self.session = Session(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            identity=tokens.identity,
        )
        self.pending_two_factor_user_id = None
        logger.info("Logged in as %s (role=%s)", tokens.identity.username, tokens.identity.role)
        self._notify()
        return self.session

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
