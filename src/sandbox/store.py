"""
Sandbox state - In-memory backend and processor for local development.

Implements the server side of the paid-signup contract:

    initiate   reserve an account shell, issue a PaymentIntent secret
    pay        processor confirmation of that intent (test card ids)
    confirm    turn a paid intent into an account, idempotent per intent id
    login      bcrypt password check, opaque bearer tokens

Nothing is persisted; restarting the sandbox starts from the seed user.
"""

import logging
import secrets
import threading
from dataclasses import dataclass, field

import bcrypt

logger = logging.getLogger(__name__)

# Test payment methods understood by the sandbox processor.
CARD_SUCCEEDS = "pm_card_visa"
CARD_DECLINED = "pm_card_chargeDeclined"
CARD_REQUIRES_ACTION = "pm_card_authenticationRequired"

_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


class SandboxError(Exception):
    """Request refused; status_code maps to the HTTP response."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


@dataclass
class SandboxUser:
    id: str
    email: str
    username: str
    password_hash: str
    referral_code: str
    role: str = "user"
    status: str = "active"
    balance: str = "0.00"
    has_pin: bool = False


@dataclass
class PendingRegistration:
    email: str
    username: str
    password_hash: str
    referral_code: str
    client_secret: str
    status: str = "requires_payment_method"


@dataclass
class SandboxStore:
    """Thread-safe in-memory state shared by all sandbox requests."""

    bcrypt_rounds: int = 10
    users: dict[str, SandboxUser] = field(default_factory=dict)
    pending: dict[str, PendingRegistration] = field(default_factory=dict)
    confirmed: dict[str, str] = field(default_factory=dict)  # intent id -> user id
    tokens: dict[str, str] = field(default_factory=dict)  # access token -> user id
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def seed_user(
        self, email: str, username: str, password: str, referral_code: str, role: str = "user"
    ) -> SandboxUser:
        user = SandboxUser(
            id=str(len(self.users) + 1),
            email=email.lower(),
            username=username,
            password_hash=self._hash(password),
            referral_code=referral_code,
            role=role,
        )
        self.users[user.id] = user
        return user

    def initiate(self, email: str, username: str, password: str, referral_code: str) -> str:
        """Reserve an account shell. Returns the PaymentIntent client secret."""
        email = email.lower()
        with self._lock:
            if self._find(email) or self._find(username):
                raise SandboxError(409, "A user with this email or username already exists.")
            if not any(u.referral_code == referral_code for u in self.users.values()):
                raise SandboxError(400, "Invalid referral code.")
            intent_id = f"pi_sbx_{secrets.token_hex(8)}"
            client_secret = f"{intent_id}_secret_{secrets.token_hex(12)}"
            self.pending[intent_id] = PendingRegistration(
                email=email,
                username=username,
                password_hash=self._hash(password),
                referral_code=referral_code,
                client_secret=client_secret,
            )
        logger.info("Sandbox registration intent %s created for %s", intent_id, email)
        return client_secret

    def pay(self, client_secret: str, payment_method: str) -> tuple[str, str]:
        """
        Processor side: confirm the intent behind client_secret.

        Returns:
            (intent id, resulting status)
        """
        intent_id = client_secret.split("_secret_", 1)[0]
        with self._lock:
            pending = self.pending.get(intent_id)
            if pending is None or not secrets.compare_digest(
                pending.client_secret.encode(), client_secret.encode()
            ):
                raise SandboxError(404, "No such payment intent.")
            if pending.status == "succeeded":
                return intent_id, pending.status
            if payment_method == CARD_DECLINED:
                raise SandboxError(402, "card_declined")
            if payment_method == CARD_REQUIRES_ACTION:
                pending.status = "requires_action"
            elif payment_method == CARD_SUCCEEDS:
                pending.status = "succeeded"
            else:
                raise SandboxError(400, "Unknown payment method.")
            return intent_id, pending.status

    def confirm(
        self, email: str, username: str, password: str, referral_code: str, intent_id: str
    ) -> SandboxUser:
        """
        Create the account for a paid intent.

        Repeating the call with the same intent id returns the account
        created the first time.
        """
        with self._lock:
            if intent_id in self.confirmed:
                return self.users[self.confirmed[intent_id]]
            pending = self.pending.get(intent_id)
            if pending is None:
                raise SandboxError(404, "Unknown registration intent.")
            if pending.status != "succeeded":
                raise SandboxError(402, "Payment has not been completed.")
            if (pending.email, pending.username, pending.referral_code) != (
                email.lower(),
                username,
                referral_code,
            ) or not bcrypt.checkpw(password.encode(), pending.password_hash.encode()):
                raise SandboxError(400, "Registration details do not match the payment.")
            if self._find(pending.email) or self._find(pending.username):
                raise SandboxError(409, "A user with this email or username already exists.")

            user = SandboxUser(
                id=str(len(self.users) + 1),
                email=pending.email,
                username=pending.username,
                password_hash=pending.password_hash,
                referral_code=f"REF{secrets.token_hex(3).upper()}",
            )
            self.users[user.id] = user
            self.confirmed[intent_id] = user.id
            del self.pending[intent_id]
        logger.info("Sandbox account %s created from payment %s", user.id, intent_id)
        return user

    def login(self, identifier: str, password: str) -> tuple[str, str, SandboxUser]:
        """
        Returns:
            (access token, refresh token, user)
        """
        user = self._find(identifier)
        # Dummy hash keeps the bcrypt cost when the user does not exist.
        stored = user.password_hash if user else _DUMMY_BCRYPT_HASH
        if not bcrypt.checkpw(password.encode(), stored.encode()) or user is None:
            raise SandboxError(400, "Invalid credentials.")
        access, refresh = secrets.token_urlsafe(24), secrets.token_urlsafe(24)
        with self._lock:
            self.tokens[access] = user.id
        return access, refresh, user

    def user_for_token(self, token: str) -> SandboxUser | None:
        user_id = self.tokens.get(token)
        return self.users.get(user_id) if user_id else None

    def _find(self, identifier: str) -> SandboxUser | None:
        needle = identifier.lower()
        for user in self.users.values():
            if user.email == needle or user.username.lower() == needle:
                return user
        return None

    def _hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode()
