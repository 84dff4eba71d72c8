"""
Field validation layer - Pure checks run before any network call.

validate_field() is the single rule table for the signup form.
RegistrationForm keeps the per-field error mapping the UI renders and
re-validates everything in aggregate right before submission, because
a required field that was never touched has never fired a change check.
"""

import re
from dataclasses import dataclass, field, fields

from .exceptions import ValidationError
from .models import RegistrationDraft

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
MIN_PASSWORD_LENGTH = 8
PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 6

FIELD_REQUIRED = "This field is required."
INVALID_EMAIL = "Please enter a valid email address."
PASSWORD_TOO_SHORT = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
PASSWORDS_DO_NOT_MATCH = "Passwords do not match."
FORM_INVALID = "Please correct the errors in the form."

REGISTRATION_FIELDS = tuple(f.name for f in fields(RegistrationDraft))


def validate_field(name: str, value: str, form: RegistrationDraft) -> str | None:
    """
    Validate one signup field against the current form state.

    Args:
        name: Draft field name
        value: Candidate value for that field
        form: Current draft, used for cross-field rules

    Returns:
        Error message, or None if the value is valid
    """
    if not value:
        return FIELD_REQUIRED
    if name == "email" and not EMAIL_PATTERN.fullmatch(value):
        return INVALID_EMAIL
    if name == "password" and len(value) < MIN_PASSWORD_LENGTH:
        return PASSWORD_TOO_SHORT
    if name == "confirm_password" and value != form.password:
        return PASSWORDS_DO_NOT_MATCH
    return None


def validate_form(form: RegistrationDraft) -> dict[str, str]:
    """Validate every field of the draft. Returns only the failing fields."""
    errors = {}
    for name in REGISTRATION_FIELDS:
        message = validate_field(name, getattr(form, name), form)
        if message:
            errors[name] = message
    return errors


@dataclass
class RegistrationForm:
    """Signup draft plus the per-field error mapping consumed by the UI."""

    draft: RegistrationDraft = field(default_factory=RegistrationDraft)
    errors: dict[str, str | None] = field(default_factory=dict)

    def set_field(self, name: str, value: str) -> str | None:
        """Store a changed value and re-run that field's check."""
        if name not in REGISTRATION_FIELDS:
            raise KeyError(name)
        setattr(self.draft, name, value)
        self.errors[name] = validate_field(name, value, self.draft)
        # confirm_password depends on password
        if name == "password" and self.draft.confirm_password:
            self.errors["confirm_password"] = validate_field(
                "confirm_password", self.draft.confirm_password, self.draft
            )
        return self.errors[name]

    def validate_all(self) -> bool:
        """Re-check every field, touched or not. Returns True when valid."""
        for name in REGISTRATION_FIELDS:
            self.errors[name] = validate_field(name, getattr(self.draft, name), self.draft)
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        return any(self.errors.values())

    def field_errors(self) -> dict[str, str]:
        return {name: message for name, message in self.errors.items() if message}


def validate_input(value: str, field_label: str) -> None:
    """Reject empty or whitespace-only input."""
    if not value or not value.strip():
        raise ValidationError(f"{field_label} cannot be empty.")


def validate_email(value: str) -> None:
    if not value or not EMAIL_PATTERN.fullmatch(value):
        raise ValidationError(INVALID_EMAIL, {"email": INVALID_EMAIL})


def validate_pin(pin: str, confirm: str) -> None:
    """PINs are 4 to 6 characters and must be entered twice."""
    if not PIN_MIN_LENGTH <= len(pin) <= PIN_MAX_LENGTH:
        raise ValidationError(
            f"PIN must be between {PIN_MIN_LENGTH} and {PIN_MAX_LENGTH} digits.",
            {"pin": "length"},
        )
    if pin != confirm:
        raise ValidationError("PINs do not match.", {"confirm": "mismatch"})


def validate_password_change(new_password: str, confirm: str) -> None:
    if new_password != confirm:
        raise ValidationError(PASSWORDS_DO_NOT_MATCH, {"confirm": PASSWORDS_DO_NOT_MATCH})
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(PASSWORD_TOO_SHORT, {"new_password": PASSWORD_TOO_SHORT})
