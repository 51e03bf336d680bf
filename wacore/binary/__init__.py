"""
wacore Binary Module

Tagged binary wire format:
- Token dictionary (single-byte strings)
- Frame encoding and bounds-checked decoding
"""

from .tokens import (
    Tag,
    TOKENS,
    token_index,
    token_at,
)

from .codec import (
    encode_frame,
    decode_frame,
    decode_all,
    flatten_attrs,
    flatten_mapping,
    ProtocolDecodeError,
)

__all__ = [
    'Tag',
    'TOKENS',
    'token_index',
    'token_at',
    'encode_frame',
    'decode_frame',
    'decode_all',
    'flatten_attrs',
    'flatten_mapping',
    'ProtocolDecodeError',
]
