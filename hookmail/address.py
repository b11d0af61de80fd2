"""
Mailbox resolution from the request path.

The destination mailbox is the whole path of the request, percent-encoded:
``/user%40example.com`` resolves to ``user@example.com``. Validation is
syntactic only (no DNS lookups) and the resolved address is returned exactly
as decoded, case included.
"""
from __future__ import annotations

import ipaddress
import re
from urllib.parse import unquote


MAX_ADDRESS_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64

_ATEXT = r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]"
_LOCAL_PART = re.compile(rf"{_ATEXT}+(?:\.{_ATEXT}+)*")
_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
_DOMAIN = re.compile(rf"{_LABEL}(?:\.{_LABEL})+")
_ADDRESS_LITERAL = re.compile(r"\[(IPv6:)?([0-9A-Fa-f:.]+)\]")


class AddressError(Exception):
    """Base class for path-to-mailbox resolution errors."""


class NoAddressProvided(AddressError):
    def __init__(self) -> None:
        super().__init__("No email address provided in URL path.")


class InvalidAddress(AddressError):
    def __init__(self, candidate: str) -> None:
        super().__init__("Invalid email address provided in URL path.")
        self.candidate = candidate


def _valid_domain(domain: str) -> bool:
    literal = _ADDRESS_LITERAL.fullmatch(domain)
    if literal:
        try:
            ip = ipaddress.ip_address(literal.group(2))
        except ValueError:
            return False
        # IPv6 literals must carry the tag, IPv4 literals must not
        return (ip.version == 6) == bool(literal.group(1))
    return _DOMAIN.fullmatch(domain) is not None


def is_valid_mailbox(value: str) -> bool:
    if not value or len(value) > MAX_ADDRESS_LENGTH or not value.isascii():
        return False
    local, sep, domain = value.rpartition("@")
    if not sep or not local or not domain:
        return False
    if len(local) > MAX_LOCAL_PART_LENGTH or _LOCAL_PART.fullmatch(local) is None:
        return False
    return _valid_domain(domain)


def extract_path(raw_target: str) -> str:
    """Return the encoded mailbox segment: path only, one slash trimmed at each end."""
    path = raw_target.split("?", 1)[0].split("#", 1)[0]
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]
    return path


def resolve(raw_target: str) -> str:
    """
    Resolve the destination mailbox from a raw (still percent-encoded) request target.

    Args:
        raw_target: Request target as received, optionally with a query string.

    Returns:
        The decoded and validated mailbox.

    Raises:
        NoAddressProvided: The path carries no address at all.
        InvalidAddress: The decoded path is not a syntactically valid mailbox.
    """
    encoded = extract_path(raw_target or "")
    try:
        # Single decoding pass; '+' stays a literal plus as it is valid in local parts
        candidate = unquote(encoded, encoding="utf-8", errors="strict")
    except UnicodeDecodeError:
        raise InvalidAddress(encoded) from None
    if not candidate:
        raise NoAddressProvided()
    if not is_valid_mailbox(candidate):
        raise InvalidAddress(candidate)
    return candidate
