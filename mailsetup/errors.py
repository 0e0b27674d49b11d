"""Exceptions raised by the account setup engine."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    CATALOG = "catalog"
    ACCOUNT = "account"
    CONNECTIVITY = "connectivity"
    FLOW = "flow"
    STORAGE = "storage"


class SetupError(Exception):
    """Base exception for all account setup errors."""

    category = ErrorCategory.FLOW
    user_message = "Account setup failed"

    def __init__(
        self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None
    ):
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Catalog errors


class InvalidPattern(SetupError):
    """A provider domain pattern contains more than one global wildcard."""

    category = ErrorCategory.CATALOG
    user_message = "Domain contains multiple globals"

    def __init__(self, pattern: str):
        super().__init__(details={"pattern": pattern})
        self.pattern = pattern


class CatalogUnavailable(SetupError):
    """A provider or OAuth catalog could not be read or parsed."""

    category = ErrorCategory.CATALOG
    user_message = "Error while trying to load provider settings"

    def __init__(self, source: str, message: Optional[str] = None):
        super().__init__(message, details={"source": source})
        self.source = source


## Account errors


class DuplicateAccount(SetupError):
    """Another account already uses the same server and login."""

    category = ErrorCategory.ACCOUNT
    user_message = "An account with these credentials already exists"

    def __init__(self, account_name: Optional[str]):
        super().__init__(details={"account_name": account_name})
        self.account_name = account_name


## Connectivity errors


class ConnectivitySecurityRequired(SetupError):
    """The server requires the user to accept or provide a certificate."""

    category = ErrorCategory.CONNECTIVITY
    user_message = "The server requires additional security confirmation"

    def __init__(self, host: Optional[str]):
        super().__init__(details={"host": host})
        self.host = host


class ConnectivityError(SetupError):
    """The connectivity check failed."""

    category = ErrorCategory.CONNECTIVITY
    user_message = "Unable to connect to the server"

    def __init__(self, reason: int, message: Optional[str] = None):
        super().__init__(message, details={"reason": reason})
        self.reason = reason


## Programming errors


class IllegalFlowState(SetupError):
    """An operation was requested that the current flow cannot perform."""

    category = ErrorCategory.FLOW
    user_message = "Illegal setup flow state"


class AccountStoreError(SetupError):
    """Persisting account data failed; nothing was committed."""

    category = ErrorCategory.STORAGE
    user_message = "Failed to save account settings"
