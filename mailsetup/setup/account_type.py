from dataclasses import dataclass
from typing import List, Optional

from mailsetup.model.host_auth import FLAG_SSL, SCHEME_EAS, SCHEME_IMAP, SCHEME_POP3
from mailsetup.providers.inference import infer_server_name
from mailsetup.setup.flow import (
    CHECK_AUTODISCOVER,
    CHECK_INCOMING,
    CHECK_OUTGOING,
    FlowMode,
    SetupData,
)
from mailsetup.utils import Logger

logger = Logger().get_logger(__name__)

ACCOUNT_TYPE_POP_IMAP = "mailsetup.pop_imap"
ACCOUNT_TYPE_EXCHANGE = "mailsetup.exchange"


@dataclass(frozen=True)
class ServiceInfo:
    protocol: str
    name: str
    account_type: str
    uses_smtp: bool
    uses_autodiscover: bool


SERVICES: List[ServiceInfo] = [
    ServiceInfo(SCHEME_POP3, "POP3", ACCOUNT_TYPE_POP_IMAP, True, False),
    ServiceInfo(SCHEME_IMAP, "IMAP", ACCOUNT_TYPE_POP_IMAP, True, False),
    ServiceInfo(SCHEME_EAS, "Exchange", ACCOUNT_TYPE_EXCHANGE, False, True),
]

_FLOW_ACCOUNT_TYPES = {
    FlowMode.ACCOUNT_MANAGER_EAS: ACCOUNT_TYPE_EXCHANGE,
    FlowMode.ACCOUNT_MANAGER_POP_IMAP: ACCOUNT_TYPE_POP_IMAP,
}


def get_service_info(protocol: Optional[str]) -> Optional[ServiceInfo]:
    for info in SERVICES:
        if info.protocol == protocol:
            return info
    return None


class AccountSetupType:
    """Account type selection: which protocol the receive server speaks."""

    def __init__(self, setup_data: SetupData):
        self._setup_data = setup_data

    def get_flow_account_type(self) -> Optional[str]:
        return self._setup_data.flow_account_type or _FLOW_ACCOUNT_TYPES.get(
            self._setup_data.flow_mode
        )

    def get_available_services(self) -> List[ServiceInfo]:
        """Services offered for selection; account manager flows restrict them."""
        if not self._setup_data.flow_mode.is_account_manager():
            return list(SERVICES)
        account_type = self.get_flow_account_type()
        return [info for info in SERVICES if info.account_type == account_type]

    def on_create(self) -> Optional[int]:
        """
        Select automatically when an account manager flow allows exactly
        one protocol.

        Returns:
            Optional[int]: check mode of the selection, or None to ask the user
        """
        if not self._setup_data.flow_mode.is_account_manager():
            return None
        services = self.get_available_services()
        if len(services) != 1:
            return None
        logger.info(f"Only {services[0].name} matches the account type, selecting it")
        return self.on_select(services[0].protocol)

    def on_select(self, protocol: str) -> int:
        """
        Apply the chosen protocol to the draft account.

        Returns:
            int: the check mode stored in the setup data
        """
        info = get_service_info(protocol)
        if info is None:
            raise ValueError(f"Unknown protocol: {protocol}")

        account = self._setup_data.account
        recv = account.get_or_create_host_auth_recv()
        if protocol == SCHEME_EAS:
            # Receive and send talk to the same Exchange server over SSL
            send = account.get_or_create_host_auth_send()
            for host_auth in (recv, send):
                host_auth.set_connection(
                    SCHEME_EAS, host_auth.address, host_auth.port, host_auth.flags | FLAG_SSL
                )
        else:
            address = recv.address
            if address:
                if recv.login:
                    recv.login = f"{recv.login}@{address}"
                address = infer_server_name(address, protocol)
            recv.set_connection(protocol, address, recv.port, recv.flags)

        if info.uses_autodiscover:
            check_mode = CHECK_AUTODISCOVER
        else:
            check_mode = CHECK_INCOMING | (CHECK_OUTGOING if info.uses_smtp else 0)
        self._setup_data.check_settings_mode = check_mode

        # Imported here: basics imports this module
        from mailsetup.setup.basics import set_flags_for_protocol

        set_flags_for_protocol(account, protocol)
        return check_mode
