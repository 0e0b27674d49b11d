from mailsetup.providers.matcher import match_provider
from mailsetup.providers.catalog import (
    Provider,
    expand_template,
    find_provider_for_domain,
)
from mailsetup.providers.inference import infer_server_name
from mailsetup.providers.oauth import (
    OAuthProvider,
    find_oauth_provider,
    get_all_oauth_providers,
)

__all__ = [
    "match_provider",
    "Provider",
    "expand_template",
    "find_provider_for_domain",
    "infer_server_name",
    "OAuthProvider",
    "find_oauth_provider",
    "get_all_oauth_providers",
]
