"""Infrastructure layer exports."""

from .auth import HttpAuthClient, SessionCredentials
from .http import ApiError
from .rows import InMemoryRowStore, RowRepository
from .sync import CredentialSource, DocumentSync, HttpDocumentSync

__all__ = [
    "ApiError",
    "CredentialSource",
    "DocumentSync",
    "HttpAuthClient",
    "HttpDocumentSync",
    "InMemoryRowStore",
    "RowRepository",
    "SessionCredentials",
]
