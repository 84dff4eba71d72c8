"""
Domain models - Value objects for the session and the signup flow.

Plain dataclasses with no framework imports. Wire formats are parsed
by the HTTP adapter and converted into these types.
"""

from dataclasses import dataclass, field, fields, replace
from urllib.parse import parse_qs, urlsplit

# Identity fields that only a server response may change.
PROTECTED_IDENTITY_FIELDS = frozenset(
    {"id", "role", "balance", "status", "withdrawal_status", "is_kyc_verified"}
)


@dataclass
class RegistrationDraft:
    """Signup details collected by the form. Never persisted."""

    username: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    referral_code: str = ""

    @classmethod
    def from_referral_link(cls, link: str) -> "RegistrationDraft":
        """Build an empty draft with referral_code taken from a ?ref= parameter."""
        query = urlsplit(link).query if "?" in link else link.lstrip("?")
        codes = parse_qs(query).get("ref") or [""]
        return cls(referral_code=codes[0])


@dataclass(frozen=True)
class RetainedDetails:
    """Draft fields kept in memory between initiate, finalize and auto-login."""

    email: str
    username: str
    password: str
    referral_code: str


@dataclass(frozen=True)
class PaymentIntentHandle:
    """Single-use processor secret bound to one registration attempt."""

    client_secret: str
    attempt: int

    @property
    def intent_id(self) -> str:
        """Intent id encoded in the secret prefix (pi_x_secret_y -> pi_x)."""
        return self.client_secret.split("_secret_", 1)[0]

    def __repr__(self) -> str:
        return f"PaymentIntentHandle(intent_id={self.intent_id!r}, attempt={self.attempt})"


@dataclass(frozen=True)
class ProcessorResponse:
    """Raw reply of the processor confirmation call."""

    error: str | None = None
    intent_id: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class Succeeded:
    """Payment captured by the processor."""

    intent_id: str


@dataclass(frozen=True)
class RequiresAction:
    """Processor needs further user action; the payment form is shown again."""

    status: str


@dataclass(frozen=True)
class PaymentFailed:
    """Processor declined or the form could not be submitted."""

    reason: str


PaymentConfirmationResult = Succeeded | RequiresAction | PaymentFailed


@dataclass(frozen=True)
class Identity:
    """Cached copy of the authenticated user. The server is the source of truth."""

    id: str
    email: str
    username: str
    role: str = "user"
    status: str = "active"
    balance: str = "0"
    has_pin: bool = False
    is_2fa_enabled: bool = False
    referral_code: str = ""
    is_kyc_verified: bool = False
    first_name: str = ""
    last_name: str = ""
    withdrawal_status: str = "active"
    unconfirmed_fields: frozenset[str] = field(default_factory=frozenset, compare=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def patched(self, changes: dict[str, object]) -> "Identity":
        """Return a copy with changes applied and recorded as unconfirmed."""
        known = {f.name for f in fields(self)} - {"unconfirmed_fields"}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown identity fields: {sorted(unknown)}")
        return replace(
            self,
            **changes,
            unconfirmed_fields=self.unconfirmed_fields | frozenset(changes),
        )


@dataclass(frozen=True)
class LoginTokens:
    """Successful login: credential pair plus the identity it belongs to."""

    access_token: str
    identity: Identity
    refresh_token: str | None = None


@dataclass(frozen=True)
class LoginChallenge:
    """Login accepted the password but requires a second factor."""

    user_id: str


@dataclass(frozen=True)
class Session:
    """Live authenticated session owned by the SessionStore."""

    access_token: str
    identity: Identity
    refresh_token: str | None = None

    def __repr__(self) -> str:
        return f"Session(identity={self.identity.username!r}, role={self.identity.role!r})"
