"""
wacore JID Helpers

JIDs address users and groups:
    <digits>@s.whatsapp.net     direct chat / user
    <id>@g.us                   group
    <id>@broadcast              broadcast list / status
"""

import re
from typing import Optional


USER_SERVER = "s.whatsapp.net"
GROUP_SERVER = "g.us"
BROADCAST_SERVER = "broadcast"

_JID_PATTERN = re.compile(r"^[0-9A-Za-z.\-_:]+@(s\.whatsapp\.net|g\.us|broadcast|c\.us)$")


def normalize_phone_number(phone: str) -> str:
    """Strip everything but digits."""
    return re.sub(r"\D", "", phone)


def phone_to_jid(phone: str) -> str:
    """
    Convert a phone number to a user JID.

    Example:
        >>> phone_to_jid("+40 712 345 678")
        '40712345678@s.whatsapp.net'
    """
    return f"{normalize_phone_number(phone)}@{USER_SERVER}"


def to_jid(value: str) -> str:
    """Return value unchanged if it is already a JID, else treat it as a phone number."""
    return value if "@" in value else phone_to_jid(value)


def jid_user(jid: str) -> str:
    """User part of a JID (text before '@')."""
    return jid.split("@", 1)[0]


def jid_server(jid: str) -> Optional[str]:
    return jid.split("@", 1)[1] if "@" in jid else None


def is_group_jid(jid: str) -> bool:
    return jid.endswith("@" + GROUP_SERVER)


def is_broadcast_jid(jid: str) -> bool:
    return jid.endswith("@" + BROADCAST_SERVER)


def validate_jid(jid: str) -> bool:
    """True if jid looks like a user, group or broadcast JID."""
    return bool(_JID_PATTERN.match(jid or ""))
