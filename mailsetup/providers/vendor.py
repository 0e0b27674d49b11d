"""
Bridge to an optional vendor policy hook.

The hook is a callable configured as "package.module:function" through
MAILSETUP_VENDOR_POLICY. It is called as hook(domain) and returns either a
falsy value (no vendor provider) or a mapping with the keys:

    in_uri, in_user, out_uri, out_user, note (optional)

Without a configured hook the vendor source never matches.
"""

import importlib
from typing import Any, Callable, Mapping, Optional

from mailsetup.providers.catalog import Provider
from mailsetup.utils import Logger
from mailsetup.utils.config import get_vendor_policy

logger = Logger().get_logger(__name__)

FIND_PROVIDER_IN_URI = "in_uri"
FIND_PROVIDER_IN_USER = "in_user"
FIND_PROVIDER_OUT_URI = "out_uri"
FIND_PROVIDER_OUT_USER = "out_user"
FIND_PROVIDER_NOTE = "note"


def _load_hook(policy_path: str) -> Optional[Callable[[str], Any]]:
    module_name, _, attr = policy_path.partition(":")
    if not module_name or not attr:
        logger.warning(f"Invalid vendor policy '{policy_path}', expected 'module:callable'")
        return None
    try:
        module = importlib.import_module(module_name)
        hook = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        logger.warning(f"VendorPolicyLoader: {e}")
        return None
    if not callable(hook):
        logger.warning(f"Vendor policy '{policy_path}' is not callable")
        return None
    return hook


class VendorPolicyLoader:
    """Vendor-supplied provider overrides"""

    _instance = None

    @classmethod
    def get_instance(cls) -> "VendorPolicyLoader":
        """get singleton instance"""
        if cls._instance is None:
            policy_path = get_vendor_policy()
            cls._instance = cls(_load_hook(policy_path) if policy_path else None)
        return cls._instance

    @classmethod
    def inject_policy_for_test(cls, hook: Optional[Callable[[str], Any]]) -> None:
        cls._instance = cls(hook)

    @classmethod
    def clear_instance(cls) -> None:
        cls._instance = None

    def __init__(self, hook: Optional[Callable[[str], Any]] = None):
        self._hook = hook

    def _call(self, domain: str) -> Mapping[str, Any]:
        if self._hook is None:
            return {}
        try:
            result = self._hook(domain)
        except Exception as e:
            logger.warning(f"Vendor policy failed for {domain}: {e}")
            return {}
        return result or {}

    def find_provider_for_domain(self, domain: str) -> Optional[Provider]:
        """
        Ask the vendor policy for provider settings of a domain.

        Returns:
            Optional[Provider]: provider without id/label, or None
        """
        out = self._call(domain)
        if not out:
            return None
        return Provider(
            id=None,
            label=None,
            domain=domain,
            incoming_uri_template=out.get(FIND_PROVIDER_IN_URI),
            incoming_username_template=out.get(FIND_PROVIDER_IN_USER),
            outgoing_uri_template=out.get(FIND_PROVIDER_OUT_URI),
            outgoing_username_template=out.get(FIND_PROVIDER_OUT_USER),
            note=out.get(FIND_PROVIDER_NOTE),
        )
