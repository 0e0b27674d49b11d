"""
What the setup pipeline needs from the host UI.

SetupPrompts shows modal prompts and reports which button was chosen.
SetupCallback receives stage results. Both get swapped for no-op versions
once a controller is detached from its UI.
"""

from enum import Enum
from typing import Optional, Protocol

from mailsetup.errors import ConnectivityError, ConnectivitySecurityRequired, DuplicateAccount
from mailsetup.model.account import Account
from mailsetup.setup.checker import CheckResult


class PromptOutcome(Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"


class SetupPrompts(Protocol):
    async def show_duplicate_account(self, error: DuplicateAccount) -> PromptOutcome: ...

    async def confirm_discard_changes(self) -> PromptOutcome: ...

    async def confirm_security_required(
        self, error: ConnectivitySecurityRequired
    ) -> PromptOutcome: ...

    async def show_error(self, error: ConnectivityError) -> PromptOutcome: ...

    async def show_provider_note(self, note: str) -> PromptOutcome: ...


class SetupCallback(Protocol):
    def on_duplicate_check_complete(self, duplicate: Optional[Account]) -> None: ...

    def on_check_settings_complete(self, result: CheckResult) -> None: ...

    def on_save_complete(self, account: Account) -> None: ...


class EmptyPrompts:
    """Prompts for a controller without UI; every prompt is cancelled."""

    async def show_duplicate_account(self, error: DuplicateAccount) -> PromptOutcome:
        return PromptOutcome.CANCEL

    async def confirm_discard_changes(self) -> PromptOutcome:
        return PromptOutcome.CANCEL

    async def confirm_security_required(
        self, error: ConnectivitySecurityRequired
    ) -> PromptOutcome:
        return PromptOutcome.CANCEL

    async def show_error(self, error: ConnectivityError) -> PromptOutcome:
        return PromptOutcome.CANCEL

    async def show_provider_note(self, note: str) -> PromptOutcome:
        return PromptOutcome.CANCEL


class EmptyCallback:
    def on_duplicate_check_complete(self, duplicate: Optional[Account]) -> None:
        pass

    def on_check_settings_complete(self, result: CheckResult) -> None:
        pass

    def on_save_complete(self, account: Account) -> None:
        pass


EMPTY_PROMPTS = EmptyPrompts()
EMPTY_CALLBACK = EmptyCallback()
