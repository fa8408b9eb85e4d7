"""Auth package — Google OAuth authorization-code flow + credential storage."""

from tasknest.auth.storage import CredentialStore, FileCredentialStore, MemoryCredentialStore

__all__ = ["CredentialStore", "FileCredentialStore", "MemoryCredentialStore"]
