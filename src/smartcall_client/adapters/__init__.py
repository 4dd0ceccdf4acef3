"""Concrete implementations of provider interfaces."""

from .api.smartcall import SmartCallClient
from .storage.file import FileCredentialStore

__all__ = [
    "FileCredentialStore",
    "SmartCallClient",
]
