"""Credential store adapters - File and database implementations."""

from .file import FileCredentialStore
from .postgres import PostgresCredentialStore, run_migrations

__all__ = ["FileCredentialStore", "PostgresCredentialStore", "run_migrations"]
