"""
Server connection settings (protocol, address, port, security, login).

An account has one HostAuth for receiving and one for sending. Provider
catalogs describe them as URIs:

    scheme[+ssl|+tls][+trustallcerts]://[user[:password]@]host[:port][/domain]
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote, urlsplit

SCHEME_IMAP = "imap"
SCHEME_POP3 = "pop3"
SCHEME_EAS = "eas"
SCHEME_SMTP = "smtp"
SCHEME_TRUST_ALL_CERTS = "trustallcerts"

PORT_UNKNOWN = -1

FLAG_NONE = 0x00
FLAG_SSL = 0x01
FLAG_TLS = 0x02
FLAG_AUTHENTICATE = 0x04
FLAG_TRUST_ALL = 0x08
# Flags the user may set through the settings screens
USER_CONFIG_MASK = FLAG_SSL | FLAG_TLS | FLAG_TRUST_ALL

# protocol -> (ssl port, plain/tls port)
DEFAULT_PORTS: Dict[str, Tuple[int, int]] = {
    SCHEME_POP3: (995, 110),
    SCHEME_IMAP: (993, 143),
    SCHEME_EAS: (443, 80),
    SCHEME_SMTP: (465, 587),
}


def _scheme_parts(scheme: str) -> list[str]:
    # "imap+ssl+" is the catalog spelling of "imap+ssl"
    return [part for part in (scheme or "").split("+") if part]


def get_scheme_flags(scheme: str) -> int:
    """Security flags encoded in a URI scheme such as "imap+ssl+trustallcerts"."""
    parts = _scheme_parts(scheme)
    flags = FLAG_NONE
    if len(parts) >= 2:
        if parts[1] == "ssl":
            flags |= FLAG_SSL
        elif parts[1] == "tls":
            flags |= FLAG_TLS
        if len(parts) >= 3 and parts[2] == SCHEME_TRUST_ALL_CERTS:
            flags |= FLAG_TRUST_ALL
    return flags


@dataclass
class HostAuth:
    # id is storage identity, not part of the settings
    id: Optional[int] = field(default=None, compare=False)
    protocol: Optional[str] = None
    address: Optional[str] = None
    port: int = PORT_UNKNOWN
    flags: int = FLAG_NONE
    login: Optional[str] = None
    password: Optional[str] = None
    domain: Optional[str] = None
    client_cert_alias: Optional[str] = None

    def set_login(self, user_name: Optional[str], user_password: Optional[str]) -> None:
        """Set credentials; FLAG_AUTHENTICATE follows whether a login is present."""
        self.login = user_name
        self.password = user_password
        if self.login is None:
            self.flags &= ~FLAG_AUTHENTICATE
        else:
            self.flags |= FLAG_AUTHENTICATE

    def set_login_from_user_info(self, user_info: Optional[str]) -> None:
        user_name = None
        user_password = None
        if user_info:
            user_name, sep, rest = user_info.partition(":")
            if sep:
                user_password = rest
        self.set_login(user_name, user_password)

    def get_login(self) -> Optional[Tuple[str, str]]:
        """(user, password) when authentication is enabled, else None."""
        if self.flags & FLAG_AUTHENTICATE:
            return (self.login or "").strip(), self.password or ""
        return None

    def set_connection(
        self,
        protocol: Optional[str],
        address: Optional[str],
        port: int,
        flags: int,
        client_cert_alias: Optional[str] = None,
    ) -> None:
        """
        Set protocol, address, port and security flags.

        An unknown port is inferred from protocol and SSL.

        Raises:
            ValueError: client_cert_alias given for a non-secure connection
        """
        self.protocol = protocol
        self.flags &= ~(FLAG_SSL | FLAG_TLS | FLAG_TRUST_ALL)
        self.flags |= flags & USER_CONFIG_MASK

        secure = (flags & (FLAG_SSL | FLAG_TLS)) != 0
        if not secure and client_cert_alias:
            raise ValueError("Can't use client alias on non-secure connections")

        self.address = address
        self.port = port
        if self.port == PORT_UNKNOWN and self.protocol in DEFAULT_PORTS:
            ssl_port, plain_port = DEFAULT_PORTS[self.protocol]
            self.port = ssl_port if self.flags & FLAG_SSL else plain_port

        self.client_cert_alias = client_cert_alias

    def set_connection_from_scheme(self, scheme: str, host: Optional[str], port: int) -> None:
        """Like set_connection, taking protocol and flags from a URI scheme."""
        parts = _scheme_parts(scheme)
        protocol = parts[0] if parts else None
        client_cert_alias = None
        # "eas+tls+trustallcerts+alias" or "eas+ssl+alias"
        if len(parts) > 3:
            client_cert_alias = parts[3]
        elif len(parts) > 2 and parts[2] != SCHEME_TRUST_ALL_CERTS:
            client_cert_alias = parts[2]
        self.set_connection(protocol, host, port, get_scheme_flags(scheme), client_cert_alias)

    def set_from_uri(self, uri: str) -> None:
        """
        Set every connection field from a catalog-style URI.

        Raises:
            ValueError: the URI cannot be parsed
        """
        parts = urlsplit(uri)
        if not parts.scheme:
            raise ValueError(f"URI has no scheme: {uri}")
        path = parts.path or ""
        self.domain = path[1:] if len(path) > 1 else None

        user_info = None
        if "@" in parts.netloc:
            user_info = unquote(parts.netloc.rpartition("@")[0])
        self.set_login_from_user_info(user_info)

        port = parts.port
        self.set_connection_from_scheme(
            parts.scheme, parts.hostname, port if port is not None else PORT_UNKNOWN
        )

    def is_eas_connection(self) -> bool:
        return self.protocol == SCHEME_EAS

    def should_use_ssl(self) -> bool:
        return (self.flags & FLAG_SSL) != 0

    def should_trust_all_server_certs(self) -> bool:
        return (self.flags & FLAG_TRUST_ALL) != 0

    def copy(self) -> "HostAuth":
        return HostAuth(**asdict(self))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["HostAuth"]:
        if data is None:
            return None
        return cls(**data)

    def __repr__(self) -> str:
        # password stays out of logs
        return (
            f"HostAuth(id={self.id}, protocol={self.protocol!r}, address={self.address!r}, "
            f"port={self.port}, flags={self.flags}, login={self.login!r})"
        )


def host_auth_from_uri(uri: str) -> HostAuth:
    host_auth = HostAuth()
    host_auth.set_from_uri(uri)
    return host_auth
