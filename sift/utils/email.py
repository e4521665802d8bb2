"""
Inbox address and sender helpers.
"""
import re
from email.utils import parseaddr
from typing import Callable, Optional

from sift.config import get_config


def inbox_domain() -> str:
    return get_config('inbox.domain', 'inbox.siftly.space')


def generate_inbox_email(user_email: str, exists: Optional[Callable[[str], bool]] = None) -> str:
    """
    Generate a stable inbox address for a user.

    The address is ``<username>@<inbox domain>`` where the username is the local
    part of the user's own address reduced to lowercase letters and digits.
    Collisions get a counter appended: ``jane1``, ``jane2`` and so on.

    Args:
        user_email: The user's own email address
        exists: Optional callable telling whether an address is already taken

    Returns:
        The generated inbox address
    """
    if not user_email:
        raise ValueError("User email is required to generate inbox email")

    username = user_email.split('@')[0].lower()
    clean_username = re.sub(r'[^a-z0-9]', '', username)
    domain = inbox_domain()

    candidate = f"{clean_username}@{domain}"
    if exists:
        counter = 1
        while exists(candidate):
            candidate = f"{clean_username}{counter}@{domain}"
            counter += 1

    return candidate


def is_inbox_email(address: Optional[str]) -> bool:
    """True if the address belongs to the inbox domain."""
    if not address:
        return False
    return address.strip().lower().endswith(f"@{inbox_domain().lower()}")


def normalize_address(address: Optional[str]) -> str:
    """Reduce ``"Name" <addr@host>`` forms to a bare lowercase-domain address."""
    if not address:
        return ""
    _, bare = parseaddr(address)
    bare = (bare or address).strip()
    if '@' not in bare:
        return bare
    local, domain = bare.rsplit('@', 1)
    return f"{local}@{domain.lower()}"


def sender_domain(address: Optional[str]) -> Optional[str]:
    """Lowercased domain of an address, or None if it has none."""
    if not address or '@' not in address:
        return None
    domain = address.rsplit('@', 1)[1].strip().lower()
    return domain or None
