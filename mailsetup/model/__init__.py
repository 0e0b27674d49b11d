from .account import Account, Policy
from .host_auth import HostAuth, host_auth_from_uri

__all__ = ["Account", "HostAuth", "Policy", "host_auth_from_uri"]
