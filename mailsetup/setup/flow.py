"""
Setup flow modes and the per-session setup context.

A SetupData is owned by whoever drives one setup or edit session and is
passed explicitly to every step. It is only mutated from the event loop;
background stages receive copies of the values they need.
"""

import json
from enum import IntEnum
from typing import Any, Dict, Optional

from mailsetup.model.account import Account, Policy
from mailsetup.utils import Logger

logger = Logger().get_logger(__name__)

# Bits of check_settings_mode
CHECK_INCOMING = 1 << 0
CHECK_OUTGOING = 1 << 1
CHECK_AUTODISCOVER = 1 << 2

SERIAL_VERSION = 1


class FlowMode(IntEnum):
    NORMAL = 0
    ACCOUNT_MANAGER_EAS = 1
    ACCOUNT_MANAGER_POP_IMAP = 2
    EDIT = 3
    FORCE_CREATE = 4
    # Terminal modes: the host UI leaves the setup flow
    RETURN_TO_CALLER = 5
    RETURN_TO_MESSAGE_LIST = 6

    def is_account_manager(self) -> bool:
        return self in (FlowMode.ACCOUNT_MANAGER_EAS, FlowMode.ACCOUNT_MANAGER_POP_IMAP)

    def is_terminal(self) -> bool:
        return self in (FlowMode.RETURN_TO_CALLER, FlowMode.RETURN_TO_MESSAGE_LIST)


class SetupData:
    """State shared by the screens of one account setup or edit session."""

    def __init__(self, flow_mode: FlowMode = FlowMode.NORMAL, account: Optional[Account] = None):
        # Opaque handle of the platform account manager; survives init()
        self.account_authenticator_response: Any = None
        self.init(flow_mode, account)

    @classmethod
    def builder(cls, flow_mode: FlowMode = FlowMode.NORMAL) -> "SetupDataBuilder":
        return SetupDataBuilder(flow_mode)

    def init(self, flow_mode: FlowMode, account: Optional[Account] = None) -> None:
        """Start a new session: fresh (or supplied) account, everything else cleared."""
        self.flow_mode = FlowMode(flow_mode)
        self.flow_account_type: Optional[str] = None
        self.account = account if account is not None else Account()
        self.username: Optional[str] = None
        self.password: Optional[str] = None
        self.check_settings_mode = 0
        self.allow_autodiscover = True
        self.policy: Optional[Policy] = None
        self.auto_setup = False
        self.is_default = False

    def set_policy(self, policy: Optional[Policy]) -> None:
        self.policy = policy
        self.account.policy = policy

    def is_check_incoming(self) -> bool:
        return (self.check_settings_mode & CHECK_INCOMING) != 0

    def is_check_outgoing(self) -> bool:
        return (self.check_settings_mode & CHECK_OUTGOING) != 0

    def is_check_autodiscover(self) -> bool:
        return (self.check_settings_mode & CHECK_AUTODISCOVER) != 0

    def is_edit(self) -> bool:
        return self.flow_mode == FlowMode.EDIT

    def debug_string(self) -> str:
        return (
            f"SetupData flow_mode={self.flow_mode.name}"
            f" account_type={self.flow_account_type}"
            f" account={self.account!r}"
            f" user={self.username}"
            f" pass={'*' * len(self.password) if self.password else None}"
            f" check_mode={self.check_settings_mode}"
            f" allow_autodiscover={self.allow_autodiscover}"
            f" auto_setup={self.auto_setup}"
            f" default={self.is_default}"
            f" policy={'set' if self.policy is not None else None}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SERIAL_VERSION,
            "flow_mode": int(self.flow_mode),
            "flow_account_type": self.flow_account_type,
            "account": self.account.to_dict(),
            "username": self.username,
            "password": self.password,
            "check_settings_mode": self.check_settings_mode,
            "allow_autodiscover": self.allow_autodiscover,
            "policy": self.policy.to_dict() if self.policy is not None else None,
            "auto_setup": self.auto_setup,
            "is_default": self.is_default,
            "account_authenticator_response": self.account_authenticator_response,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetupData":
        """
        Rebuild a session from to_dict() output.

        Raises:
            ValueError: unsupported version or malformed data
        """
        version = data.get("version")
        if version != SERIAL_VERSION:
            raise ValueError(f"Unsupported SetupData version: {version}")
        try:
            setup_data = cls(FlowMode(data["flow_mode"]), Account.from_dict(data["account"]))
            setup_data.flow_account_type = data.get("flow_account_type")
            setup_data.username = data.get("username")
            setup_data.password = data.get("password")
            setup_data.check_settings_mode = int(data.get("check_settings_mode", 0))
            setup_data.allow_autodiscover = bool(data.get("allow_autodiscover", True))
            setup_data.policy = Policy.from_dict(data.get("policy"))
            setup_data.auto_setup = bool(data.get("auto_setup", False))
            setup_data.is_default = bool(data.get("is_default", False))
            setup_data.account_authenticator_response = data.get(
                "account_authenticator_response"
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed SetupData: {e}") from e
        return setup_data

    def to_bytes(self) -> bytes:
        """
        Serialize for storage across process restarts.

        The authenticator response must be JSON serializable.
        """
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "SetupData":
        try:
            decoded = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed SetupData bundle: {e}") from e
        if not isinstance(decoded, dict):
            raise ValueError("Malformed SetupData bundle: expected an object")
        return cls.from_dict(decoded)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SetupData):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return self.debug_string()


class SetupDataBuilder:
    """
    Builds the SetupData for a new session.

    Example:
      setup_data = (
          SetupData.builder(FlowMode.NORMAL)
          .with_credentials("me@example.com", "secret")
          .build()
      )
    """

    def __init__(self, flow_mode: FlowMode):
        self._flow_mode = flow_mode
        self._account: Optional[Account] = None
        self._username: Optional[str] = None
        self._password: Optional[str] = None
        self._allow_autodiscover = True
        self._authenticator_response: Any = None

    def with_account(self, account: Account) -> "SetupDataBuilder":
        self._account = account
        return self

    def with_credentials(self, username: str, password: Optional[str]) -> "SetupDataBuilder":
        self._username = username
        self._password = password
        return self

    def allow_autodiscover(self, allow: bool) -> "SetupDataBuilder":
        self._allow_autodiscover = allow
        return self

    def with_authenticator_response(self, response: Any) -> "SetupDataBuilder":
        self._authenticator_response = response
        return self

    def build(self) -> SetupData:
        setup_data = SetupData(self._flow_mode, self._account)
        setup_data.username = self._username
        setup_data.password = self._password
        setup_data.allow_autodiscover = self._allow_autodiscover
        setup_data.account_authenticator_response = self._authenticator_response
        logger.debug(f"Started setup session: {setup_data.debug_string()}")
        return setup_data
