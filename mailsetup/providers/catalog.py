"""
Provider catalog lookup.

Catalogs are XML documents of the form:

    <providers>
      <provider id="gmail" label="Gmail" domain="gmail.com" oauth="google">
        <incoming uri="imap+ssl+://imap.gmail.com" username="$email" />
        <outgoing uri="smtp+ssl+://smtp.gmail.com" username="$email" />
      </provider>
    </providers>

Each lookup parses its catalogs again; nothing is cached.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional

from mailsetup.errors import CatalogUnavailable, InvalidPattern
from mailsetup.providers.matcher import match_provider
from mailsetup.utils import Logger
from mailsetup.utils.config import get_product_providers_path, get_providers_path

logger = Logger().get_logger(__name__)

TEMPLATE_EMAIL = "$email"
TEMPLATE_USER = "$user"
TEMPLATE_DOMAIN = "$domain"


def expand_template(
    template: Optional[str], email: str, user: str, domain: str
) -> Optional[str]:
    """
    Replace $email, $user and $domain in template.

    Replacement is literal text substitution, applied in that order.
    """
    if template is None:
        return None
    result = template.replace(TEMPLATE_EMAIL, email)
    result = result.replace(TEMPLATE_USER, user)
    return result.replace(TEMPLATE_DOMAIN, domain)


@dataclass
class Provider:
    """A catalog entry, plus the values expanded for one email address."""

    id: Optional[str] = None
    label: Optional[str] = None
    domain: Optional[str] = None
    note: Optional[str] = None
    oauth: Optional[str] = None
    incoming_uri_template: Optional[str] = None
    incoming_username_template: Optional[str] = None
    outgoing_uri_template: Optional[str] = None
    outgoing_username_template: Optional[str] = None
    alt_incoming_uri_template: Optional[str] = None
    alt_incoming_username_template: Optional[str] = None
    alt_outgoing_uri_template: Optional[str] = None
    alt_outgoing_username_template: Optional[str] = None
    incoming_uri: Optional[str] = None
    incoming_username: Optional[str] = None
    outgoing_uri: Optional[str] = None
    outgoing_username: Optional[str] = None

    def _expand(self, email: str, templates: tuple) -> None:
        user = email.split("@")[0]
        domain = self.domain or ""
        in_uri, in_user, out_uri, out_user = templates
        self.incoming_uri = expand_template(in_uri, email, user, domain)
        self.incoming_username = expand_template(in_user, email, user, domain)
        self.outgoing_uri = expand_template(out_uri, email, user, domain)
        self.outgoing_username = expand_template(out_user, email, user, domain)

    def expand_templates(self, email: str) -> None:
        """Fill the incoming/outgoing URI and username from the primary templates."""
        self._expand(
            email,
            (
                self.incoming_uri_template,
                self.incoming_username_template,
                self.outgoing_uri_template,
                self.outgoing_username_template,
            ),
        )

    def expand_alternate_templates(self, email: str) -> None:
        """Like expand_templates, but from the fallback templates."""
        self._expand(
            email,
            (
                self.alt_incoming_uri_template,
                self.alt_incoming_username_template,
                self.alt_outgoing_uri_template,
                self.alt_outgoing_username_template,
            ),
        )


# child element -> (uri field, username field)
_SERVER_ELEMENTS = {
    "incoming": ("incoming_uri_template", "incoming_username_template"),
    "outgoing": ("outgoing_uri_template", "outgoing_username_template"),
    "incoming-fallback": (
        "alt_incoming_uri_template",
        "alt_incoming_username_template",
    ),
    "outgoing-fallback": (
        "alt_outgoing_uri_template",
        "alt_outgoing_username_template",
    ),
}


def load_catalog(path: str) -> ET.Element:
    """
    Parse a catalog file and return its root element.

    Raises:
        CatalogUnavailable: the file is missing or is not well-formed XML
    """
    try:
        return ET.parse(path).getroot()
    except (OSError, ET.ParseError) as e:
        raise CatalogUnavailable(path, str(e)) from e


def _provider_from_element(element: ET.Element, domain: str) -> Provider:
    provider = Provider(
        id=element.get("id"),
        label=element.get("label"),
        domain=domain.lower(),
        note=element.get("note"),
        oauth=element.get("oauth"),
    )
    for child in element:
        fields = _SERVER_ELEMENTS.get(child.tag)
        if fields is None:
            continue
        uri_field, username_field = fields
        setattr(provider, uri_field, child.get("uri"))
        setattr(provider, username_field, child.get("username"))
    return provider


def find_provider_in_catalog(path: str, domain: str) -> Optional[Provider]:
    """
    Search a single catalog for the first entry whose domain pattern matches.

    Entries with malformed patterns are skipped. An unreadable catalog
    behaves like one without matches.
    """
    try:
        root = load_catalog(path)
    except CatalogUnavailable as e:
        logger.error(f"Error while trying to load provider settings from {e.source}: {e}")
        return None

    for element in root.iter("provider"):
        pattern = element.get("domain")
        if pattern is None:
            continue
        try:
            matched = match_provider(domain, pattern)
        except InvalidPattern:
            logger.warning(
                f"providers entry '{element.get('id')}' in {path}: Domain contains multiple globals"
            )
            continue
        if matched:
            return _provider_from_element(element, domain)
    return None


def find_provider_for_domain(
    domain: str,
    *,
    vendor_loader=None,
    product_path: Optional[str] = None,
    providers_path: Optional[str] = None,
) -> Optional[Provider]:
    """
    Find the provider for an email domain.

    Sources are consulted in order: vendor policy, product catalog,
    built-in catalog. The first source with a match wins; results are
    never merged across sources.

    Args:
        domain: The domain portion of the user's email address
        vendor_loader: Vendor policy source; defaults to the configured one
        product_path: Product override catalog; defaults to configuration
        providers_path: Built-in catalog; defaults to configuration

    Returns:
        Optional[Provider]: matching provider, or None
    """
    if vendor_loader is None:
        from mailsetup.providers.vendor import VendorPolicyLoader

        vendor_loader = VendorPolicyLoader.get_instance()

    provider = vendor_loader.find_provider_for_domain(domain)
    if provider is None:
        provider = find_provider_in_catalog(
            product_path or get_product_providers_path(), domain
        )
    if provider is None:
        provider = find_provider_in_catalog(
            providers_path or get_providers_path(), domain
        )

    if provider is not None:
        logger.info(f"Provider for {domain}: {provider.id or 'vendor'}")
    else:
        logger.info(f"No provider found for {domain}")
    return provider
