from .account_store import ACCOUNT_CONTENT_FIELDS, AccountStore, SqlAccountStore

__all__ = ["ACCOUNT_CONTENT_FIELDS", "AccountStore", "SqlAccountStore"]
