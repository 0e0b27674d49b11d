"""
Connectivity checker contract.

Validating settings against real servers (IMAP, POP3, SMTP, Exchange) is
left to a pluggable checker. The setup pipeline awaits check() and acts
on the returned CheckResult.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from mailsetup.model.account import Account
from mailsetup.model.host_auth import HostAuth

# Autodiscover result codes
AUTODISCOVER_OK = 0
AUTODISCOVER_NO_DATA = 1
AUTODISCOVER_AUTHENTICATION = 2


class CheckOutcome(Enum):
    OK = "ok"
    SECURITY_REQUIRED = "security_required"
    ERROR = "error"
    AUTODISCOVER_RESULT = "autodiscover_result"


@dataclass(frozen=True)
class CheckResult:
    outcome: CheckOutcome
    host: Optional[str] = None
    reason: Optional[int] = None
    message: Optional[str] = None
    autodiscover_code: Optional[int] = None
    host_auth: Optional[HostAuth] = None

    @classmethod
    def ok(cls) -> "CheckResult":
        return cls(CheckOutcome.OK)

    @classmethod
    def security_required(cls, host: Optional[str]) -> "CheckResult":
        return cls(CheckOutcome.SECURITY_REQUIRED, host=host)

    @classmethod
    def error(cls, reason: int, message: Optional[str] = None) -> "CheckResult":
        return cls(CheckOutcome.ERROR, reason=reason, message=message)

    @classmethod
    def autodiscover(cls, code: int, host_auth: Optional[HostAuth] = None) -> "CheckResult":
        return cls(CheckOutcome.AUTODISCOVER_RESULT, autodiscover_code=code, host_auth=host_auth)


class ConnectivityChecker(Protocol):
    async def check(self, check_mode: int, account: Account) -> CheckResult:
        """
        Validate the settings selected by check_mode.

        Args:
            check_mode: CHECK_INCOMING / CHECK_OUTGOING / CHECK_AUTODISCOVER bits
            account: copy of the draft account; changes are not read back

        Cancelling the awaiting task must abort the check.
        """
        ...
