"""Settings and session credentials."""

from roundclient.core.config import Settings
from roundclient.core.config import load_settings
from roundclient.core.credentials import CredentialProvider
from roundclient.core.credentials import FileCredentialProvider
from roundclient.core.credentials import StaticCredentialProvider

__all__ = [
    "CredentialProvider",
    "FileCredentialProvider",
    "Settings",
    "StaticCredentialProvider",
    "load_settings",
]
