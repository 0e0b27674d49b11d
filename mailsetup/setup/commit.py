from typing import Any, Dict

from mailsetup.model.account import Account
from mailsetup.store.account_store import AccountStore
from mailsetup.utils import Logger

logger = Logger().get_logger(__name__)


def get_account_content_values(account: Account) -> Dict[str, Any]:
    """Account fields editable from the account settings screens."""
    return {
        "display_name": account.display_name,
        "sender_name": account.sender_name,
        "signature": account.signature,
        "sync_interval": account.sync_interval,
        "flags": account.flags,
        "sync_lookback": account.sync_lookback,
        "security_sync_key": account.security_sync_key,
    }


def commit_settings(store: AccountStore, account: Account) -> Account:
    """
    Persist account settings and refresh the backup.

    An unsaved account is inserted with its host auths and policy; a saved
    one only gets its account-level fields updated.

    Raises:
        AccountStoreError: persisting or backing up failed
    """
    if not account.is_saved():
        if account.policy is not None:
            # Unsupported policies are re-reported by the server on next sync
            account.policy.protocol_policies_unsupported = None
        store.save_account(account)
    else:
        store.update_account(account, get_account_content_values(account))

    store.backup()
    return account
