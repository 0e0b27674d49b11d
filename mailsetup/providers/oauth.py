"""
OAuth provider catalog.

    <oauth>
      <provider id="google" label="Google" auth_endpoint="..." token_endpoint="..."
                refresh_endpoint="..." response_type="code" redirect_uri="..."
                scope="..." state="..." client_id="..." client_secret="..." />
    </oauth>
"""

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from mailsetup.errors import CatalogUnavailable
from mailsetup.providers.catalog import load_catalog
from mailsetup.utils import Logger
from mailsetup.utils.config import get_oauth_path

logger = Logger().get_logger(__name__)


@dataclass(frozen=True)
class OAuthProvider:
    id: Optional[str]
    label: Optional[str] = None
    auth_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    refresh_endpoint: Optional[str] = None
    response_type: Optional[str] = None
    redirect_uri: Optional[str] = None
    scope: Optional[str] = None
    state: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None


def _from_element(element) -> OAuthProvider:
    return OAuthProvider(
        id=element.get("id"),
        label=element.get("label"),
        auth_endpoint=element.get("auth_endpoint"),
        token_endpoint=element.get("token_endpoint"),
        refresh_endpoint=element.get("refresh_endpoint"),
        response_type=element.get("response_type"),
        redirect_uri=element.get("redirect_uri"),
        scope=element.get("scope"),
        state=element.get("state"),
        client_id=element.get("client_id"),
        client_secret=element.get("client_secret"),
    )


def get_all_oauth_providers(path: Optional[str] = None) -> List[OAuthProvider]:
    """
    Load every OAuth provider, in catalog order.

    The first entry is the default choice. An unreadable catalog yields
    an empty list.
    """
    try:
        root = load_catalog(path or get_oauth_path())
    except CatalogUnavailable as e:
        logger.error(f"Error while trying to load oauth providers from {e.source}: {e}")
        return []
    return [_from_element(element) for element in root.iter("provider")]


def find_oauth_provider(
    provider_id: str, path: Optional[str] = None
) -> Optional[OAuthProvider]:
    """Return the OAuth provider with the given id, or None."""
    for provider in get_all_oauth_providers(path):
        if provider.id == provider_id:
            return provider
    return None


def create_oauth_registration_request(provider: OAuthProvider, email_address: str) -> str:
    """
    Build the authorization-code request URL for a provider.

    Existing query parameters of the auth endpoint are kept.
    """
    params = {
        "response_type": provider.response_type or "",
        "client_id": provider.client_id or "",
        "redirect_uri": provider.redirect_uri or "",
        "scope": provider.scope or "",
        "state": provider.state or "",
        "login_hint": email_address,
    }
    parts = urlsplit(provider.auth_endpoint or "")
    query = urlencode(params)
    if parts.query:
        query = f"{parts.query}&{query}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
