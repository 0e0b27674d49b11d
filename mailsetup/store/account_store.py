"""
Account store: the persistence interface consumed by the setup flow and its
SQLAlchemy implementation.

Every method is blocking; the setup pipeline calls them from a worker pool.
"""

import json
import os
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from mailsetup.errors import AccountStoreError
from mailsetup.model.account import Account, Policy
from mailsetup.model.host_auth import SCHEME_SMTP, HostAuth
from mailsetup.store.models import (
    AccountRecord,
    HostAuthRecord,
    PolicyRecord,
    get_session_factory,
    init_db,
)
from mailsetup.utils import Logger, retry_on_fail
from mailsetup.utils.config import get_backup_path, get_db_url

logger = Logger().get_logger(__name__)

BACKUP_VERSION = 1

# Account fields that update_account() may change
ACCOUNT_CONTENT_FIELDS = (
    "display_name",
    "email_address",
    "sender_name",
    "signature",
    "flags",
    "sync_interval",
    "sync_lookback",
    "security_sync_key",
    "protocol_version",
)

_HOST_AUTH_FIELDS = (
    "protocol",
    "address",
    "port",
    "flags",
    "login",
    "password",
    "domain",
    "client_cert_alias",
)


class AccountStore(Protocol):
    def find_existing_account(
        self, allow_account_id: Optional[int], host: str, login: str
    ) -> Optional[Account]: ...

    def save_account(self, account: Account) -> Account: ...

    def update_account(self, account: Account, changed_fields: Dict[str, Any]) -> None: ...

    def update_host_auth(self, host_auth: HostAuth) -> None: ...

    def update_account_settings(
        self, account: Account, changed_fields: Dict[str, Any], host_auths: Sequence[HostAuth]
    ) -> None: ...

    def backup(self) -> None: ...


def _copy_host_auth_to_record(host_auth: HostAuth, record: HostAuthRecord) -> HostAuthRecord:
    for name in _HOST_AUTH_FIELDS:
        setattr(record, name, getattr(host_auth, name))
    return record


def _host_auth_from_record(record: Optional[HostAuthRecord]) -> Optional[HostAuth]:
    if record is None:
        return None
    host_auth = HostAuth(id=record.id)
    for name in _HOST_AUTH_FIELDS:
        setattr(host_auth, name, getattr(record, name))
    return host_auth


def _policy_from_record(record: Optional[PolicyRecord]) -> Optional[Policy]:
    if record is None:
        return None
    policy = Policy.from_dict(json.loads(record.settings))
    policy.id = record.id
    return policy


def _account_from_record(record: AccountRecord) -> Account:
    account = Account(
        id=record.id,
        host_auth_recv=_host_auth_from_record(record.host_auth_recv),
        host_auth_send=_host_auth_from_record(record.host_auth_send),
        policy=_policy_from_record(record.policy),
    )
    for name in ACCOUNT_CONTENT_FIELDS:
        setattr(account, name, getattr(record, name))
    return account


def _new_policy_record(policy: Policy) -> PolicyRecord:
    settings = policy.to_dict()
    settings["id"] = None
    return PolicyRecord(settings=json.dumps(settings))


def _new_account_record(account: Account) -> AccountRecord:
    record = AccountRecord()
    for name in ACCOUNT_CONTENT_FIELDS:
        setattr(record, name, getattr(account, name))
    if account.host_auth_recv is not None:
        record.host_auth_recv = _copy_host_auth_to_record(account.host_auth_recv, HostAuthRecord())
    if account.host_auth_send is not None:
        record.host_auth_send = _copy_host_auth_to_record(account.host_auth_send, HostAuthRecord())
    if account.policy is not None:
        record.policy = _new_policy_record(account.policy)
    return record


def _assign_ids(account: Account, record: AccountRecord) -> None:
    account.id = record.id
    if account.host_auth_recv is not None:
        account.host_auth_recv.id = record.host_auth_recv_id
    if account.host_auth_send is not None:
        account.host_auth_send.id = record.host_auth_send_id
    if account.policy is not None:
        account.policy.id = record.policy_id


def _apply_changed_fields(record: AccountRecord, changed_fields: Dict[str, Any]) -> None:
    for key, value in changed_fields.items():
        if key not in ACCOUNT_CONTENT_FIELDS:
            logger.warning(f"Ignoring unknown account field: {key}")
            continue
        setattr(record, key, value)


class SqlAccountStore:
    """Account store backed by a SQLAlchemy database"""

    def __init__(self, db_url: Optional[str] = None, *, backup_path: Optional[str] = None):
        self._db_url = db_url or get_db_url()
        self._backup_path = backup_path or get_backup_path()
        self._engine = init_db(self._db_url)
        self._session_factory = get_session_factory(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    def get_account(self, account_id: int) -> Optional[Account]:
        session = self._session_factory()
        try:
            record = session.get(AccountRecord, account_id)
            return _account_from_record(record) if record is not None else None
        finally:
            session.close()

    def get_all_accounts(self) -> List[Account]:
        session = self._session_factory()
        try:
            records = session.query(AccountRecord).order_by(AccountRecord.id).all()
            return [_account_from_record(record) for record in records]
        finally:
            session.close()

    def find_existing_account(
        self, allow_account_id: Optional[int], host: str, login: str
    ) -> Optional[Account]:
        """
        Find an account, other than allow_account_id, whose receive server
        matches host and login (case-insensitive). Send settings are ignored.

        Returns:
            Optional[Account]: the conflicting account, or None
        """
        session = self._session_factory()
        try:
            host_auths = (
                session.query(HostAuthRecord)
                .filter(func.lower(HostAuthRecord.address) == (host or "").lower())
                .filter(func.lower(HostAuthRecord.login) == (login or "").lower())
                .filter(HostAuthRecord.protocol != SCHEME_SMTP)
                .all()
            )
            for host_auth in host_auths:
                records = (
                    session.query(AccountRecord)
                    .filter(AccountRecord.host_auth_recv_id == host_auth.id)
                    .all()
                )
                for record in records:
                    if record.id != allow_account_id:
                        return _account_from_record(record)
            return None
        except SQLAlchemyError as e:
            logger.error(f"Error looking up accounts for {login}@{host}: {e}")
            raise AccountStoreError(str(e)) from e
        finally:
            session.close()

    def save_account(self, account: Account) -> Account:
        """
        Insert an unsaved account with its host auths and policy.

        All rows are written in one transaction. Ids are assigned to the
        passed objects only after the commit succeeds.

        Raises:
            AccountStoreError: the account is already saved or the write failed
        """
        if account.is_saved():
            raise AccountStoreError(
                f"Account {account.id} is already saved", details={"account_id": account.id}
            )

        session = self._session_factory()
        try:
            record = _new_account_record(account)
            session.add(record)
            session.commit()
            _assign_ids(account, record)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error saving account {account.email_address}: {e}")
            raise AccountStoreError(str(e)) from e
        finally:
            session.close()

        logger.info(f"Saved account {account.id} ({account.email_address})")
        return account

    def update_account(self, account: Account, changed_fields: Dict[str, Any]) -> None:
        """
        Update some account-level fields of a saved account.

        Args:
            account: saved account
            changed_fields: field name -> new value, from ACCOUNT_CONTENT_FIELDS

        Raises:
            AccountStoreError: the account does not exist or the write failed
        """
        session = self._session_factory()
        try:
            record = session.get(AccountRecord, account.id) if account.id is not None else None
            if record is None:
                raise AccountStoreError(
                    f"Account {account.id} not found", details={"account_id": account.id}
                )
            _apply_changed_fields(record, changed_fields)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating account {account.id}: {e}")
            raise AccountStoreError(str(e)) from e
        finally:
            session.close()

    def update_account_settings(
        self, account: Account, changed_fields: Dict[str, Any], host_auths: Sequence[HostAuth]
    ) -> None:
        """
        Update account fields and host auths of a saved account in one
        transaction. Nothing is written unless every row exists.

        Raises:
            AccountStoreError: a row does not exist or the write failed
        """
        session = self._session_factory()
        try:
            record = session.get(AccountRecord, account.id) if account.id is not None else None
            if record is None:
                raise AccountStoreError(
                    f"Account {account.id} not found", details={"account_id": account.id}
                )
            _apply_changed_fields(record, changed_fields)
            for host_auth in host_auths:
                host_auth_record = (
                    session.get(HostAuthRecord, host_auth.id) if host_auth.id is not None else None
                )
                if host_auth_record is None:
                    raise AccountStoreError(
                        f"HostAuth {host_auth.id} not found",
                        details={"account_id": account.id, "host_auth_id": host_auth.id},
                    )
                _copy_host_auth_to_record(host_auth, host_auth_record)
            session.commit()
        except AccountStoreError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating settings of account {account.id}: {e}")
            raise AccountStoreError(str(e)) from e
        finally:
            session.close()
        logger.info(f"Updated settings of account {account.id}")

    def update_host_auth(self, host_auth: HostAuth) -> None:
        """
        Overwrite a saved host auth with the given settings.

        Raises:
            AccountStoreError: the host auth does not exist or the write failed
        """
        session = self._session_factory()
        try:
            record = (
                session.get(HostAuthRecord, host_auth.id) if host_auth.id is not None else None
            )
            if record is None:
                raise AccountStoreError(
                    f"HostAuth {host_auth.id} not found", details={"host_auth_id": host_auth.id}
                )
            _copy_host_auth_to_record(host_auth, record)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating host auth {host_auth.id}: {e}")
            raise AccountStoreError(str(e)) from e
        finally:
            session.close()

    def update_policy(self, account: Account, policy: Optional[Policy]) -> None:
        """Replace (or drop, with None) the policy of a saved account."""
        session = self._session_factory()
        try:
            record = session.get(AccountRecord, account.id) if account.id is not None else None
            if record is None:
                raise AccountStoreError(
                    f"Account {account.id} not found", details={"account_id": account.id}
                )
            old_policy = record.policy
            if policy is None:
                record.policy = None
            else:
                record.policy = _new_policy_record(policy)
            if old_policy is not None:
                session.delete(old_policy)
            session.commit()
            if policy is not None:
                policy.id = record.policy_id
            account.policy = policy
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating policy of account {account.id}: {e}")
            raise AccountStoreError(str(e)) from e
        finally:
            session.close()

    @retry_on_fail(max_retries=2, retry_delay=0.2, exceptions=OSError)
    def _write_backup(self, payload: Dict[str, Any]) -> None:
        directory = os.path.dirname(self._backup_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self._backup_path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self._backup_path)

    def backup(self) -> None:
        """
        Write every account to the JSON side copy.

        Raises:
            AccountStoreError: the backup file could not be written
        """
        accounts = self.get_all_accounts()
        payload = {
            "version": BACKUP_VERSION,
            "accounts": [account.to_dict() for account in accounts],
        }
        try:
            self._write_backup(payload)
        except OSError as e:
            raise AccountStoreError(
                f"Failed to write backup: {e}", details={"path": self._backup_path}
            ) from e
        logger.debug(f"Backed up {len(accounts)} account(s) to {self._backup_path}")

    def restore_accounts_if_needed(self) -> int:
        """
        Restore accounts from the backup when the database has none.

        Returns:
            int: number of restored accounts

        Raises:
            AccountStoreError: the restored accounts could not be written
        """
        if self.get_all_accounts() or not os.path.exists(self._backup_path):
            return 0

        try:
            with open(self._backup_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read backup {self._backup_path}: {e}")
            return 0

        if payload.get("version") != BACKUP_VERSION:
            logger.warning(f"Unsupported backup version: {payload.get('version')}")
            return 0

        # All accounts or none, so a failed restore is retried on the next call
        session = self._session_factory()
        try:
            records = [
                _new_account_record(Account.from_dict(data))
                for data in payload.get("accounts", [])
            ]
            session.add_all(records)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error restoring accounts from {self._backup_path}: {e}")
            raise AccountStoreError(str(e)) from e
        finally:
            session.close()

        logger.info(f"Restored {len(records)} account(s) from backup")
        return len(records)
