"""
First setup screen: email address and password.

With a known provider the account is configured automatically from the
catalog templates and checked right away. Otherwise placeholder settings
are created and the flow continues with account type selection.
"""

import asyncio
from typing import Optional

from mailsetup.model.account import (
    CHECK_INTERVAL_PUSH,
    DELETE_POLICY_ON_DELETE,
    FLAGS_DEFAULT,
    Account,
)
from mailsetup.model.host_auth import FLAG_NONE, PORT_UNKNOWN, SCHEME_EAS, SCHEME_IMAP
from mailsetup.providers.catalog import Provider, find_provider_for_domain
from mailsetup.providers.inference import has_password_spaces
from mailsetup.setup.account_type import get_service_info
from mailsetup.setup.flow import CHECK_INCOMING, CHECK_OUTGOING, FlowMode
from mailsetup.setup.prompts import PromptOutcome
from mailsetup.setup.server import AccountServerController, PipelineOutcome
from mailsetup.utils import Logger
from mailsetup.utils.config import get_default_check_interval

logger = Logger().get_logger(__name__)


def split_email(email: str) -> tuple[str, str]:
    """
    Split an address into (user, domain).

    Raises:
        ValueError: not of the form user@domain
    """
    user, sep, domain = email.strip().rpartition("@")
    if not sep or not user.strip() or not domain.strip():
        raise ValueError(f"Invalid email address: {email!r}")
    return user.strip(), domain.strip()


def set_flags_for_protocol(account: Account, protocol: Optional[str]) -> None:
    if protocol == SCHEME_IMAP:
        # Delete messages on the server when deleted locally
        account.set_delete_policy(DELETE_POLICY_ON_DELETE)
    if protocol == SCHEME_EAS:
        account.sync_interval = CHECK_INTERVAL_PUSH
    else:
        account.sync_interval = get_default_check_interval()


def populate_account(
    account: Account, email: str, sender_name: Optional[str], make_default: bool
) -> None:
    account.email_address = email
    account.sender_name = sender_name or email
    account.display_name = email
    account.set_flag(FLAGS_DEFAULT, make_default)
    set_flags_for_protocol(account, account.get_protocol())


class AccountSetupBasics(AccountServerController):
    """Automatic or manual setup from an email address and password."""

    commits_after_setup = True

    def start(
        self,
        email: str,
        password: Optional[str],
        *,
        manual: bool = False,
        sender_name: Optional[str] = None,
        make_default: bool = False,
    ) -> Optional[asyncio.Task]:
        """Run on_next() as the gesture's task; None while one is running."""
        return self._start(self.on_next, email, password, manual, sender_name, make_default)

    async def on_next(
        self,
        email: str,
        password: Optional[str],
        manual: bool = False,
        sender_name: Optional[str] = None,
        make_default: bool = False,
    ) -> PipelineOutcome:
        """
        Raises:
            ValueError: the email address is malformed
        """
        email = email.strip()
        _, domain = split_email(email)
        if has_password_spaces(password):
            logger.warning("Password starts or ends with a space")
        self._setup_data.username = email
        self._setup_data.password = password
        self._setup_data.is_default = make_default

        provider = None
        if not manual and self._setup_data.flow_mode != FlowMode.ACCOUNT_MANAGER_EAS:
            provider = await self._run_in_worker(find_provider_for_domain, domain)
            if self._detached:
                return PipelineOutcome.CANCELLED

        if provider is None:
            self.setup_manual(email, password, sender_name, make_default)
            return PipelineOutcome.MANUAL

        if provider.note:
            outcome = await self._prompts.show_provider_note(provider.note)
            if outcome != PromptOutcome.CONFIRM or self._detached:
                return PipelineOutcome.CANCELLED

        try:
            host, login, check_mode = self.setup_auto(
                provider, email, password, sender_name, make_default
            )
        except ValueError as e:
            logger.warning(f"Provider {provider.id} has unusable settings: {e}")
            self.setup_manual(email, password, sender_name, make_default)
            return PipelineOutcome.MANUAL

        return await self.proceed(self.account.id, host, login, check_mode)

    def setup_auto(
        self,
        provider: Provider,
        email: str,
        password: Optional[str],
        sender_name: Optional[str] = None,
        make_default: bool = False,
    ) -> tuple[Optional[str], Optional[str], int]:
        """
        Build host auths from the provider templates.

        Returns:
            (host, login, check mode) for the pipeline

        Raises:
            ValueError: a template does not expand into a usable URI
        """
        provider.expand_templates(email)
        if not provider.incoming_uri:
            raise ValueError("provider has no incoming server")
        account = self.account
        recv = account.get_or_create_host_auth_recv()
        recv.set_from_uri(provider.incoming_uri)
        recv.set_login(provider.incoming_username, password)

        check_mode = CHECK_INCOMING
        info = get_service_info(recv.protocol)
        if info is None or info.uses_smtp:
            if not provider.outgoing_uri:
                raise ValueError("provider has no outgoing server")
            send = account.get_or_create_host_auth_send()
            send.set_from_uri(provider.outgoing_uri)
            send.set_login(provider.outgoing_username, password)
            check_mode |= CHECK_OUTGOING

        populate_account(account, email, sender_name, make_default)
        self._setup_data.auto_setup = True
        self.load_settings()
        logger.info(f"Auto setup for {email} with provider {provider.id or 'vendor'}")
        return recv.address, provider.incoming_username, check_mode

    def setup_manual(
        self,
        email: str,
        password: Optional[str],
        sender_name: Optional[str] = None,
        make_default: bool = False,
    ) -> None:
        """Placeholder settings user:password@domain, protocol chosen later."""
        user, domain = split_email(email)
        account = self.account
        for host_auth in (
            account.get_or_create_host_auth_recv(),
            account.get_or_create_host_auth_send(),
        ):
            host_auth.set_login(user, password)
            host_auth.set_connection(None, domain, PORT_UNKNOWN, FLAG_NONE)

        populate_account(account, email, sender_name, make_default)
        self._setup_data.auto_setup = False
        self.load_settings()
        logger.info(f"Manual setup for {email}")

    def get_proceed_request(self) -> tuple[Optional[str], Optional[str], int]:
        recv = self.account.get_or_create_host_auth_recv()
        return recv.address, recv.login, self._setup_data.check_settings_mode

    def save_settings_after_setup(self) -> None:
        pass

    def save_settings_after_edit(self, account: Account) -> None:
        raise NotImplementedError("The basics screen is not part of the edit flow")
