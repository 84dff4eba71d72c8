"""
Account settings - Self-service changes for the logged-in user.

Inputs are validated locally before any call. Server-confirmed changes
are mirrored into the cached identity through the session store.
"""

from dataclasses import dataclass

from .models import Identity
from .ports import AccountBackend
from .session import SessionStore
from .validation import validate_password_change, validate_pin


@dataclass
class AccountSettings:
    """Password, PIN and profile-name operations."""

    backend: AccountBackend
    sessions: SessionStore

    async def change_password(self, current_password: str, new_password: str, confirm: str) -> None:
        validate_password_change(new_password, confirm)
        await self.backend.change_password(current_password, new_password)

    async def set_pin(self, pin: str, confirm: str) -> str:
        """
        Set the withdrawal PIN.

        Returns:
            Confirmation text from the backend
        """
        validate_pin(pin, confirm)
        detail = await self.backend.set_pin(pin)
        self.sessions.patch_identity_locally(has_pin=True)
        return detail

    def update_profile_name(self, first_name: str, last_name: str) -> Identity:
        # No backend endpoint exists for names; the change stays local.
        return self.sessions.patch_identity_locally(first_name=first_name, last_name=last_name)
