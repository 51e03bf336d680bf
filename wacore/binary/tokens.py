"""
wacore Token Dictionary

The fixed, ordered vocabulary of protocol strings shared with the server.
A string found here is written as a single byte holding its index instead
of a length-prefixed payload.

Tag Layout (first byte of every frame):
    0           LIST_EMPTY    empty list / null
    2           STREAM_8      stream marker (not used by this client)
    3..235      token index into TOKENS
    236..239    DICTIONARY_n  secondary dictionaries (not supported)
    248         LIST_8        list, 1-byte count
    249         LIST_16       list, 2-byte count
    250         JID_PAIR      user@server pair
    251         HEX_8         packed hex string
    252         BINARY_8      payload, 1-byte length
    253         BINARY_20     payload, 20-bit length in 3 bytes
    254         BINARY_32     payload, 4-byte length
    255         NIBBLE_8      packed digit string

Empty slots in TOKENS are unassigned: they never match on encode and are
rejected on decode.
"""

from enum import IntEnum
from typing import Dict, Optional


class Tag(IntEnum):
    """Wire tag bytes."""
    LIST_EMPTY = 0
    STREAM_8 = 2
    DICTIONARY_0 = 236
    DICTIONARY_1 = 237
    DICTIONARY_2 = 238
    DICTIONARY_3 = 239
    LIST_8 = 248
    LIST_16 = 249
    JID_PAIR = 250
    HEX_8 = 251
    BINARY_8 = 252
    BINARY_20 = 253
    BINARY_32 = 254
    NIBBLE_8 = 255


# Highest index addressable by a single token byte (exclusive)
SINGLE_BYTE_LIMIT = Tag.DICTIONARY_0

TOKENS = (
    '', '', '', 'stream:start', '', 'stream:features', '', '', '', '', '', '', '', '', '1', '1.0',
    'ack', 'action', 'add', 'after', 'archive', 'author', 'available', 'battery', 'before', 'body',
    'broadcast', 'chat', 'class', 'clean', 'code', 'composing', 'config', 'create', 'debug',
    'delete', 'demote', 'duplicate', 'encoding', 'error', 'false', 'filehash', 'from', 'g.us',
    'group', 'groups_v2', 'height', 'id', 'image', 'in', 'index', 'invis', 'item', 'jid', 'kind',
    'last', 'leave', 'live', 'log', 'media', 'message', 'mimetype', 'missing', 'modify', 'name',
    'notification', 'notify', 'out', 'owner', 'participant', 'paused', 'picture', 'played',
    'presence', 'preview', 'promote', 'query', 'quoted', 'read', 'receipt', 'received', 'recipient',
    'recording', 'relay', 'remove', 'response', 'resume', 'retry', 's.whatsapp.net', 'seconds',
    'set', 'size', 'status', 'subject', 'subscribe', 't', 'text', 'to', 'true', 'type', 'unarchive',
    'unavailable', 'url', 'user', 'value', 'web', 'width', 'mute', 'read_only', 'admin', 'creator',
    'short', 'update', 'powersave', 'checksum', 'epoch', 'block', 'previous', '409', 'replaced',
    'reason', 'spam', 'modify_tag', 'message_tag', 'delivery', 'emoji', 'title', 'description',
    'canonical-url', 'matched-text', 'star', 'unstar', 'media_key', 'filename', 'identity',
    'unread', 'page', 'page_size', 'download', 'business', 'verified_name', 'location',
    'document', 'audio', 'video', 'init', 'platform', 'version',
)

# Reverse index, first occurrence wins
_TOKEN_INDEX: Dict[str, int] = {}
for _index, _token in enumerate(TOKENS):
    if _token and _index < SINGLE_BYTE_LIMIT and _token not in _TOKEN_INDEX:
        _TOKEN_INDEX[_token] = _index
del _index, _token


def token_index(value: str) -> Optional[int]:
    """
    Look up the single-byte index of a string.

    Args:
        value: Candidate string

    Returns:
        Token index, or None if the string is not an assigned token
    """
    return _TOKEN_INDEX.get(value)


def token_at(index: int) -> Optional[str]:
    """
    Exact reverse lookup of a token byte.

    Returns:
        The token string, or None for unassigned or out-of-range indices
    """
    if 0 <= index < min(len(TOKENS), SINGLE_BYTE_LIMIT):
        token = TOKENS[index]
        return token or None
    return None
