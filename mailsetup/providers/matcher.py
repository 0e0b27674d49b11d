"""
Domain matching against provider catalog patterns.

A pattern may contain at most one "*", which matches any run of characters
(including none), and any number of "?", each matching exactly one character.
Comparison is case-insensitive.
"""

from mailsetup.errors import InvalidPattern

WILD_STRING = "*"
WILD_CHARACTER = "?"


def _match_with_wildcards(test_part: str, provider_part: str) -> bool:
    if len(test_part) != len(provider_part):
        return False
    for test_char, provider_char in zip(test_part, provider_part):
        if test_char != provider_char and provider_char != WILD_CHARACTER:
            return False
    return True


def match_provider(test_domain: str, provider_domain: str) -> bool:
    """
    Return True if test_domain matches the catalog pattern provider_domain.

    Raises:
        InvalidPattern: the pattern contains more than one "*"
    """
    test = (test_domain or "").lower()
    pattern = (provider_domain or "").lower()

    segments = pattern.split(WILD_STRING)
    if len(segments) == 1:
        return _match_with_wildcards(test, pattern)
    if len(segments) != 2:
        raise InvalidPattern(provider_domain)

    prefix, suffix = segments
    if len(test) < len(prefix) + len(suffix):
        return False
    if not _match_with_wildcards(test[: len(prefix)], prefix):
        return False
    return _match_with_wildcards(test[len(test) - len(suffix):], suffix)
