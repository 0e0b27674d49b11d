"""
Server settings controllers and the duplicate-check / check / save pipeline.

Pipeline of one "next" gesture:

    1. duplicate check   store.find_existing_account (worker pool)
    2. settings check    checker.check (async, external)
    3. save              after-setup mutation and/or store writes (worker pool)

Each stage starts only after the previous one succeeded. A controller runs
at most one pipeline at a time; further gestures are ignored until it ends.
After detach() no prompt or callback reaches the UI anymore.
"""

import asyncio
import copy
import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Optional

from mailsetup.errors import (
    ConnectivityError,
    ConnectivitySecurityRequired,
    DuplicateAccount,
    IllegalFlowState,
)
from mailsetup.model.account import Account
from mailsetup.model.host_auth import (
    FLAG_NONE,
    FLAG_SSL,
    FLAG_TRUST_ALL,
    SCHEME_EAS,
    SCHEME_SMTP,
    HostAuth,
)
from mailsetup.providers.inference import infer_server_name
from mailsetup.setup.checker import (
    AUTODISCOVER_AUTHENTICATION,
    AUTODISCOVER_OK,
    CheckOutcome,
    CheckResult,
    ConnectivityChecker,
)
from mailsetup.setup.commit import commit_settings, get_account_content_values
from mailsetup.setup.flow import CHECK_AUTODISCOVER, CHECK_INCOMING, CHECK_OUTGOING, SetupData
from mailsetup.setup.prompts import (
    EMPTY_CALLBACK,
    EMPTY_PROMPTS,
    PromptOutcome,
    SetupCallback,
    SetupPrompts,
)
from mailsetup.store.account_store import AccountStore
from mailsetup.utils import Logger
from mailsetup.utils.config import get_worker_threads

logger = Logger().get_logger(__name__)

_worker_pool: Optional[ThreadPoolExecutor] = None
_worker_pool_lock = threading.Lock()


def get_worker_pool() -> ThreadPoolExecutor:
    """Shared pool for blocking store work, sized by MAILSETUP_WORKER_THREADS."""
    global _worker_pool
    if _worker_pool is None:
        with _worker_pool_lock:
            if _worker_pool is None:
                _worker_pool = ThreadPoolExecutor(
                    max_workers=get_worker_threads(), thread_name_prefix="mailsetup-store"
                )
    return _worker_pool


class PipelineOutcome(Enum):
    SAVED = "saved"
    DUPLICATE = "duplicate"
    CHECK_FAILED = "check_failed"
    AUTODISCOVERED = "autodiscovered"
    MANUAL = "manual"
    CANCELLED = "cancelled"
    IGNORED = "ignored"


class AccountServerController:
    """
    Common logic of the screens that edit server settings.

    Subclasses provide the proceed request of their screen and the two save
    strategies: save_settings_after_setup (runs on the event loop, no store
    access) and save_settings_after_edit (runs on the worker pool with a
    copy of the account).
    """

    # Whether stage 1 runs for this screen
    checks_duplicates = True
    # Whether a new account is committed once this screen's check passes
    commits_after_setup = False

    def __init__(
        self,
        setup_data: SetupData,
        *,
        store: AccountStore,
        checker: ConnectivityChecker,
        prompts: Optional[SetupPrompts] = None,
        callback: Optional[SetupCallback] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._setup_data = setup_data
        self._store = store
        self._checker = checker
        self._prompts = prompts or EMPTY_PROMPTS
        self._callback = callback or EMPTY_CALLBACK
        self._executor = executor
        self._proceed_pressed = False
        self._detached = False
        self._task: Optional[asyncio.Task] = None
        self.settings_mode = setup_data.is_edit()
        self._loaded_recv_auth: Optional[HostAuth] = None
        self._loaded_send_auth: Optional[HostAuth] = None
        self.load_settings()

    @property
    def setup_data(self) -> SetupData:
        return self._setup_data

    @property
    def account(self) -> Account:
        return self._setup_data.account

    def load_settings(self) -> None:
        """Remember the current host auths for have_settings_changed()."""
        recv = self.account.host_auth_recv
        send = self.account.host_auth_send
        self._loaded_recv_auth = recv.copy() if recv is not None else None
        self._loaded_send_auth = send.copy() if send is not None else None

    def have_settings_changed(self) -> bool:
        send_changed = (
            self._loaded_send_auth is not None
            and self._loaded_send_auth != self.account.get_or_create_host_auth_send()
        )
        recv_changed = (
            self._loaded_recv_auth is not None
            and self._loaded_recv_auth != self.account.get_or_create_host_auth_recv()
        )
        return send_changed or recv_changed

    async def on_back_pressed(self) -> bool:
        """
        Returns:
            bool: True if the screen may be left
        """
        if self.settings_mode and self.have_settings_changed():
            outcome = await self._prompts.confirm_discard_changes()
            return outcome == PromptOutcome.CONFIRM
        return True

    def get_proceed_request(self) -> tuple[Optional[str], Optional[str], int]:
        """(host, login, check mode) for the pipeline of this screen."""
        raise NotImplementedError

    def on_next_button(self) -> Optional[asyncio.Task]:
        """
        Start the pipeline for the current settings.

        Returns:
            Optional[asyncio.Task]: the pipeline task, or None when one is
            already running
        """
        host, login, check_mode = self.get_proceed_request()
        return self._start(self.proceed, self.account.id, host, login, check_mode)

    def _start(self, coro_fn: Callable[..., Any], *args) -> Optional[asyncio.Task]:
        if self._detached:
            return None
        if self._proceed_pressed or (self._task is not None and not self._task.done()):
            logger.debug(f"{type(self).__name__}: ignoring gesture, pipeline in flight")
            return None
        self._task = asyncio.create_task(coro_fn(*args))
        return self._task

    async def _run_in_worker(self, fn: Callable[..., Any], *args) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor or get_worker_pool(), functools.partial(fn, *args)
        )

    def detach(self) -> None:
        """Disconnect from the UI and cancel the running pipeline."""
        self._detached = True
        self._prompts = EMPTY_PROMPTS
        self._callback = EMPTY_CALLBACK
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def proceed(
        self,
        account_id: Optional[int],
        check_host: Optional[str],
        check_login: Optional[str],
        check_mode: int,
    ) -> PipelineOutcome:
        """
        Run duplicate check, settings check and save.

        Args:
            account_id: id of the account being edited; never reported as its own duplicate
            check_host: receive server address to check for duplicates
            check_login: receive login to check for duplicates
            check_mode: CHECK_* bits for the connectivity checker

        Raises:
            AccountStoreError: the save failed; nothing was committed
        """
        if self._proceed_pressed:
            logger.debug(f"{type(self).__name__}: proceed already in flight")
            return PipelineOutcome.IGNORED
        self._proceed_pressed = True
        try:
            self._setup_data.check_settings_mode = check_mode

            if self.checks_duplicates:
                duplicate = await self._run_in_worker(
                    self._store.find_existing_account, account_id, check_host, check_login
                )
                if self._detached:
                    return PipelineOutcome.CANCELLED
                self._callback.on_duplicate_check_complete(duplicate)
                if duplicate is not None:
                    error = DuplicateAccount(duplicate.display_name)
                    logger.info(f"Duplicate of account {duplicate.id} for {check_login}@{check_host}")
                    await self._prompts.show_duplicate_account(error)
                    return PipelineOutcome.DUPLICATE

            logger.info(f"{type(self).__name__}: checking settings, mode={check_mode}")
            result = await self._checker.check(check_mode, copy.deepcopy(self.account))
            if self._detached:
                return PipelineOutcome.CANCELLED
            return await self._handle_check_result(result)
        finally:
            self._proceed_pressed = False

    async def _handle_check_result(self, result: CheckResult) -> PipelineOutcome:
        if result.outcome == CheckOutcome.AUTODISCOVER_RESULT:
            return await self.on_autodiscover_complete(result)

        if result.outcome == CheckOutcome.SECURITY_REQUIRED:
            outcome = await self._prompts.confirm_security_required(
                ConnectivitySecurityRequired(result.host)
            )
            if outcome != PromptOutcome.CONFIRM or self._detached:
                logger.info(f"Security confirmation declined for {result.host}")
                self._callback.on_check_settings_complete(result)
                return PipelineOutcome.CHECK_FAILED
            result = CheckResult.ok()

        if result.outcome == CheckOutcome.ERROR:
            logger.info(f"Settings check failed: reason={result.reason} {result.message}")
            self._callback.on_check_settings_complete(result)
            await self._prompts.show_error(ConnectivityError(result.reason, result.message))
            return PipelineOutcome.CHECK_FAILED

        return await self.on_check_settings_complete(result)

    async def on_check_settings_complete(self, result: CheckResult) -> PipelineOutcome:
        """Stage 3: save according to the flow mode, then notify the UI."""
        if self._setup_data.is_edit():
            await self._run_in_worker(
                self.save_settings_after_edit, copy.deepcopy(self.account)
            )
        else:
            self.save_settings_after_setup()
            if self.commits_after_setup:
                saved = await self._run_in_worker(
                    commit_settings, self._store, copy.deepcopy(self.account)
                )
                self._adopt_ids(saved)
        if self._detached:
            return PipelineOutcome.CANCELLED

        self.load_settings()
        self._callback.on_check_settings_complete(result)
        self._callback.on_save_complete(self.account)
        return PipelineOutcome.SAVED

    def _adopt_ids(self, saved: Account) -> None:
        account = self.account
        account.id = saved.id
        if account.host_auth_recv is not None and saved.host_auth_recv is not None:
            account.host_auth_recv.id = saved.host_auth_recv.id
        if account.host_auth_send is not None and saved.host_auth_send is not None:
            account.host_auth_send.id = saved.host_auth_send.id
        if account.policy is not None and saved.policy is not None:
            account.policy.id = saved.policy.id
            account.policy.protocol_policies_unsupported = None

    async def on_autodiscover_complete(self, result: CheckResult) -> PipelineOutcome:
        raise IllegalFlowState(
            f"Unexpected call to on_autodiscover_complete on {type(self).__name__}"
        )

    def save_settings_after_setup(self) -> None:
        raise NotImplementedError

    def save_settings_after_edit(self, account: Account) -> None:
        raise NotImplementedError


class IncomingServerController(AccountServerController):
    """Receive server settings (POP3 / IMAP)."""

    def apply_settings(
        self,
        username: str,
        password: Optional[str],
        server: str,
        port: int,
        security_flags: int,
        *,
        path_prefix: Optional[str] = None,
        delete_policy: Optional[int] = None,
    ) -> None:
        recv = self.account.get_or_create_host_auth_recv()
        recv.set_login(username.strip(), password)
        recv.set_connection(recv.protocol, server.strip(), port, security_flags)
        recv.domain = path_prefix or None
        if delete_policy is not None:
            self.account.set_delete_policy(delete_policy)

    def get_proceed_request(self) -> tuple[Optional[str], Optional[str], int]:
        recv = self.account.get_or_create_host_auth_recv()
        return recv.address, recv.login, CHECK_INCOMING

    def save_settings_after_setup(self) -> None:
        # Outgoing defaults follow the verified incoming settings
        recv = self.account.get_or_create_host_auth_recv()
        send = self.account.get_or_create_host_auth_send()
        host_name = infer_server_name(recv.address or "", None, SCHEME_SMTP)
        send.set_login(recv.login, recv.password)
        send.set_connection(send.protocol or SCHEME_SMTP, host_name, send.port, send.flags)

    def save_settings_after_edit(self, account: Account) -> None:
        self._store.update_account_settings(
            account, get_account_content_values(account), [account.host_auth_recv]
        )
        self._store.backup()


class OutgoingServerController(AccountServerController):
    """Send server settings (SMTP). Duplicates are decided by receive settings."""

    checks_duplicates = False
    commits_after_setup = True

    def apply_settings(
        self,
        server: str,
        port: int,
        security_flags: int,
        *,
        require_login: bool,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        send = self.account.get_or_create_host_auth_send()
        if require_login:
            send.set_login((username or "").strip(), password)
        else:
            send.set_login(None, None)
        send.set_connection(SCHEME_SMTP, server.strip(), port, security_flags)

    def get_proceed_request(self) -> tuple[Optional[str], Optional[str], int]:
        send = self.account.get_or_create_host_auth_send()
        return send.address, send.login, CHECK_OUTGOING

    def save_settings_after_setup(self) -> None:
        pass

    def save_settings_after_edit(self, account: Account) -> None:
        self._store.update_host_auth(account.host_auth_send)
        self._store.backup()


class ExchangeServerController(AccountServerController):
    """Exchange (EAS) settings; receive and send share one server."""

    commits_after_setup = True

    def apply_settings(
        self,
        username: str,
        password: Optional[str],
        server: str,
        *,
        use_ssl: bool,
        trust_certificates: bool = False,
        client_cert_alias: Optional[str] = None,
    ) -> None:
        """
        Raises:
            ValueError: client_cert_alias without SSL
        """
        username = username.strip()
        # "\user" is how users type an empty Windows domain
        if username.startswith("\\"):
            username = username[1:]
        flags = FLAG_SSL if use_ssl else FLAG_NONE
        if use_ssl and trust_certificates:
            flags |= FLAG_TRUST_ALL
        port = 443 if use_ssl else 80
        server = server.strip()

        for host_auth in (
            self.account.get_or_create_host_auth_recv(),
            self.account.get_or_create_host_auth_send(),
        ):
            host_auth.set_login(username, password)
            host_auth.set_connection(SCHEME_EAS, server, port, flags, client_cert_alias)

    def get_proceed_request(self) -> tuple[Optional[str], Optional[str], int]:
        recv = self.account.get_or_create_host_auth_recv()
        return recv.address, recv.login, CHECK_INCOMING

    def start_autodiscover(self) -> Optional[asyncio.Task]:
        """Ask the checker for server settings derived from the login."""
        if not self._setup_data.allow_autodiscover:
            return None
        recv = self.account.get_or_create_host_auth_recv()
        return self._start(
            self.proceed, self.account.id, recv.address, recv.login, CHECK_AUTODISCOVER
        )

    async def on_autodiscover_complete(self, result: CheckResult) -> PipelineOutcome:
        self._setup_data.allow_autodiscover = False
        self._callback.on_check_settings_complete(result)
        if result.autodiscover_code == AUTODISCOVER_OK and result.host_auth is not None:
            self.account.host_auth_recv = result.host_auth.copy()
            self.account.host_auth_send = result.host_auth.copy()
            self.load_settings()
            logger.info(f"Autodiscover found {result.host_auth.address}")
            return PipelineOutcome.AUTODISCOVERED
        if result.autodiscover_code == AUTODISCOVER_AUTHENTICATION:
            logger.info("Autodiscover failed: authentication")
            await self._prompts.show_error(
                ConnectivityError(AUTODISCOVER_AUTHENTICATION, "Authentication failed")
            )
        else:
            logger.info("Autodiscover returned no data")
        return PipelineOutcome.CHECK_FAILED

    def save_settings_after_setup(self) -> None:
        pass

    def save_settings_after_edit(self, account: Account) -> None:
        self._store.update_account_settings(
            account, {}, [account.host_auth_recv, account.host_auth_send]
        )
        self._store.backup()
