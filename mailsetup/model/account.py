"""
Account draft and security policy.

An Account is built up in memory during setup and only reaches the account
store when the setup (or edit) pipeline succeeds.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from mailsetup.model.host_auth import HostAuth

FLAGS_NOTIFY_NEW_MAIL = 1 << 0
FLAGS_VIBRATE_ALWAYS = 1 << 1
# Two bits holding one of the DELETE_POLICY_* values
FLAGS_DELETE_POLICY_MASK = (1 << 2) | (1 << 3)
FLAGS_DELETE_POLICY_SHIFT = 2
FLAGS_INCOMPLETE = 1 << 4
FLAGS_SECURITY_HOLD = 1 << 5
FLAGS_VIBRATE_WHEN_SILENT = 1 << 6
FLAGS_DEFAULT = 1 << 7

DELETE_POLICY_NEVER = 0
DELETE_POLICY_7DAYS = 1 << 0
DELETE_POLICY_ON_DELETE = 1 << 1

CHECK_INTERVAL_NEVER = -1
CHECK_INTERVAL_PUSH = -2

SYNC_WINDOW_AUTO = 0
SYNC_WINDOW_1_DAY = 1
SYNC_WINDOW_3_DAYS = 2
SYNC_WINDOW_1_WEEK = 3
SYNC_WINDOW_2_WEEKS = 4
SYNC_WINDOW_1_MONTH = 5
SYNC_WINDOW_ALL = 6


@dataclass
class Policy:
    """Security policy imposed by an Exchange server."""

    id: Optional[int] = field(default=None, compare=False)
    password_mode: int = 0
    password_min_length: int = 0
    password_max_fails: int = 0
    password_history: int = 0
    password_expiration_days: int = 0
    password_complex_chars: int = 0
    max_screen_lock_time: int = 0
    require_remote_wipe: bool = False
    require_encryption: bool = False
    require_encryption_external: bool = False
    require_manual_sync_when_roaming: bool = False
    dont_allow_camera: bool = False
    dont_allow_attachments: bool = False
    dont_allow_html: bool = False
    max_attachment_size: int = 0
    max_text_truncation_size: int = 0
    max_html_truncation_size: int = 0
    max_email_lookback: int = 0
    max_calendar_lookback: int = 0
    password_recovery_enabled: bool = False
    protocol_policies_enforced: Optional[str] = None
    protocol_policies_unsupported: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Policy"]:
        if data is None:
            return None
        return cls(**data)


@dataclass
class Account:
    """Account settings plus its receive and send server settings."""

    # None until the account store assigns an id
    id: Optional[int] = None
    display_name: Optional[str] = None
    email_address: Optional[str] = None
    sender_name: Optional[str] = None
    signature: Optional[str] = None
    flags: int = 0
    sync_interval: int = CHECK_INTERVAL_NEVER
    sync_lookback: int = SYNC_WINDOW_AUTO
    security_sync_key: Optional[str] = None
    protocol_version: Optional[str] = None
    host_auth_recv: Optional[HostAuth] = None
    host_auth_send: Optional[HostAuth] = None
    policy: Optional[Policy] = None

    def is_saved(self) -> bool:
        return self.id is not None

    def get_or_create_host_auth_recv(self) -> HostAuth:
        if self.host_auth_recv is None:
            self.host_auth_recv = HostAuth()
        return self.host_auth_recv

    def get_or_create_host_auth_send(self) -> HostAuth:
        if self.host_auth_send is None:
            self.host_auth_send = HostAuth()
        return self.host_auth_send

    def get_delete_policy(self) -> int:
        return (self.flags & FLAGS_DELETE_POLICY_MASK) >> FLAGS_DELETE_POLICY_SHIFT

    def set_delete_policy(self, policy: int) -> None:
        self.flags &= ~FLAGS_DELETE_POLICY_MASK
        self.flags |= (policy << FLAGS_DELETE_POLICY_SHIFT) & FLAGS_DELETE_POLICY_MASK

    def set_flag(self, flag: int, enabled: bool) -> None:
        if enabled:
            self.flags |= flag
        else:
            self.flags &= ~flag

    def has_flag(self, flag: int) -> bool:
        return (self.flags & flag) != 0

    def is_default(self) -> bool:
        return self.has_flag(FLAGS_DEFAULT)

    def get_protocol(self) -> Optional[str]:
        if self.host_auth_recv is None:
            return None
        return self.host_auth_recv.protocol

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Account"]:
        if data is None:
            return None
        values = dict(data)
        values["host_auth_recv"] = HostAuth.from_dict(values.get("host_auth_recv"))
        values["host_auth_send"] = HostAuth.from_dict(values.get("host_auth_send"))
        values["policy"] = Policy.from_dict(values.get("policy"))
        return cls(**values)

    def __repr__(self) -> str:
        return (
            f"Account(id={self.id}, email_address={self.email_address!r}, "
            f"flags={self.flags}, recv={self.host_auth_recv!r}, send={self.host_auth_send!r})"
        )
