"""
wacore Binary Frame Codec

Encodes and decodes the tagged binary wire format.

Frame Forms:
    LIST_EMPTY                      null or empty list
    LIST_8    count(1)  frames...   list of up to 255 frames
    LIST_16   count(2)  frames...   list of up to 65535 frames
    <token>                         single byte, index into TOKENS
    BINARY_8  len(1)    bytes       payload under 256 bytes
    BINARY_20 len(3)    bytes       payload under 2^20 bytes
    BINARY_32 len(4)    bytes       larger payloads

All multi-byte integers are big-endian.

Design Principles:
- Deterministic output for a given input
- Every declared length is checked against the remaining buffer
- Booleans and numbers are written as their text and come back as strings
- Mappings are flattened to an alternating key,value list
"""

import math
import struct
from typing import Any, Dict, List, Mapping, Tuple

from .tokens import Tag, token_at, token_index


# Largest payload addressable by BINARY_20
BINARY_20_LIMIT = 1 << 20

# Largest list addressable by LIST_16
LIST_16_LIMIT = 1 << 16

_NIBBLE_ALPHABET = "0123456789-."
_HEX_ALPHABET = "0123456789ABCDEF"


class ProtocolDecodeError(ValueError):
    """Raised when a frame is malformed or truncated."""
    pass


# =============================================================================
# Encoding
# =============================================================================

def _number_text(value: Any) -> str:
    """Render a bool or number the way the server expects it as a string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _write_payload(out: bytearray, data: bytes) -> None:
    """Write a length-prefixed payload using the smallest length form."""
    length = len(data)
    if length < 256:
        out.append(Tag.BINARY_8)
        out.append(length)
    elif length < BINARY_20_LIMIT:
        out.append(Tag.BINARY_20)
        out += struct.pack(">I", length)[1:]
    else:
        out.append(Tag.BINARY_32)
        out += struct.pack(">I", length)
    out += data


def _write_string(out: bytearray, value: str) -> None:
    index = token_index(value)
    if index is not None:
        out.append(index)
        return
    _write_payload(out, value.encode("utf-8"))


def _write_list(out: bytearray, items: List[Any]) -> None:
    count = len(items)
    if count == 0:
        out.append(Tag.LIST_EMPTY)
        return
    if count < 256:
        out.append(Tag.LIST_8)
        out.append(count)
    elif count < LIST_16_LIMIT:
        out.append(Tag.LIST_16)
        out += struct.pack(">H", count)
    else:
        raise ValueError(f"List too long to encode: {count} items")

    for item in items:
        _write_value(out, item)


def _write_value(out: bytearray, value: Any) -> None:
    if value is None:
        out.append(Tag.LIST_EMPTY)
    elif isinstance(value, str):
        _write_string(out, value)
    elif isinstance(value, (bool, int, float)):
        _write_string(out, _number_text(value))
    elif isinstance(value, (bytes, bytearray, memoryview)):
        _write_payload(out, bytes(value))
    elif isinstance(value, Mapping):
        _write_list(out, flatten_mapping(value))
    elif isinstance(value, (list, tuple)):
        _write_list(out, list(value))
    else:
        raise TypeError(f"Cannot encode value of type {type(value).__name__}")


def flatten_mapping(mapping: Mapping[Any, Any]) -> List[Any]:
    """Flatten a mapping to an alternating key,value list."""
    items: List[Any] = []
    for key, value in mapping.items():
        items.append(key)
        items.append(value)
    return items


def encode_frame(value: Any) -> bytes:
    """
    Encode a value as one wire frame.

    Args:
        value: None, str, bool, int, float, bytes, list/tuple or a flat
            mapping. Lists may nest.

    Returns:
        bytes: Encoded frame

    Raises:
        TypeError: If a value of an unsupported type is encountered
        ValueError: If a list is too long to encode
    """
    out = bytearray()
    _write_value(out, value)
    return bytes(out)


# =============================================================================
# Decoding
# =============================================================================

class _Reader:
    """Bounds-checked cursor over a frame buffer."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.pos = offset

    def _require(self, count: int) -> None:
        remaining = len(self.data) - self.pos
        if count > remaining:
            raise ProtocolDecodeError(
                f"Declared length {count} exceeds remaining {remaining} bytes "
                f"at offset {self.pos}"
            )

    def read_byte(self) -> int:
        self._require(1)
        value = self.data[self.pos]
        self.pos += 1
        return value

    def read_int(self, size: int) -> int:
        self._require(size)
        value = int.from_bytes(self.data[self.pos:self.pos + size], "big")
        self.pos += size
        return value

    def read_bytes(self, count: int) -> bytes:
        self._require(count)
        value = bytes(self.data[self.pos:self.pos + count])
        self.pos += count
        return value


def _payload_value(raw: bytes) -> Any:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


def _read_packed(reader: _Reader, alphabet: str, tag: Tag) -> str:
    start = reader.read_byte()
    raw = reader.read_bytes(start & 0x7F)

    chars = []
    for byte in raw:
        for nibble in (byte >> 4, byte & 0x0F):
            if tag == Tag.NIBBLE_8 and nibble == 0x0F:
                # Filler nibble
                continue
            if nibble >= len(alphabet):
                raise ProtocolDecodeError(
                    f"Invalid nibble {nibble:#x} in {tag.name} string"
                )
            chars.append(alphabet[nibble])

    if start & 0x80 and tag == Tag.HEX_8 and chars:
        # Odd length: last nibble is padding
        chars.pop()
    return "".join(chars)


def _read_string_value(reader: _Reader) -> Any:
    """Read a frame that must decode to a string (or null)."""
    value = _read_value(reader)
    if value is not None and not isinstance(value, (str, bytes)):
        raise ProtocolDecodeError("Expected string frame inside JID pair")
    if isinstance(value, bytes):
        raise ProtocolDecodeError("JID component is not valid UTF-8")
    return value


def _read_value(reader: _Reader) -> Any:
    tag = reader.read_byte()

    if tag == Tag.LIST_EMPTY:
        return None
    if tag == Tag.LIST_8:
        return [_read_value(reader) for _ in range(reader.read_byte())]
    if tag == Tag.LIST_16:
        return [_read_value(reader) for _ in range(reader.read_int(2))]
    if tag == Tag.BINARY_8:
        return _payload_value(reader.read_bytes(reader.read_byte()))
    if tag == Tag.BINARY_20:
        length = reader.read_int(3) & 0x0FFFFF
        return _payload_value(reader.read_bytes(length))
    if tag == Tag.BINARY_32:
        return _payload_value(reader.read_bytes(reader.read_int(4)))
    if tag == Tag.JID_PAIR:
        user = _read_string_value(reader)
        server = _read_string_value(reader)
        if server is None:
            raise ProtocolDecodeError("JID pair without server part")
        return f"{user}@{server}" if user else server
    if tag == Tag.NIBBLE_8:
        return _read_packed(reader, _NIBBLE_ALPHABET, Tag.NIBBLE_8)
    if tag == Tag.HEX_8:
        return _read_packed(reader, _HEX_ALPHABET, Tag.HEX_8)
    if Tag.DICTIONARY_0 <= tag <= Tag.DICTIONARY_3:
        raise ProtocolDecodeError(f"Secondary dictionary tag {tag} not supported")
    if tag < Tag.DICTIONARY_0 and tag != Tag.STREAM_8:
        token = token_at(tag)
        if token is None:
            raise ProtocolDecodeError(f"Token byte {tag} outside dictionary range")
        return token

    raise ProtocolDecodeError(f"Unrecognized tag byte {tag:#04x}")


def decode_frame(data: bytes, offset: int = 0) -> Tuple[Any, int]:
    """
    Decode one frame from the front of a buffer.

    Payloads come back as str when they are valid UTF-8 and as bytes
    otherwise, so a bytes value that happens to be valid UTF-8 is returned
    as str. Booleans and numbers are returned as their string forms and
    LIST_EMPTY decodes to None.

    Args:
        data: Buffer holding at least one frame
        offset: Position of the frame's tag byte

    Returns:
        Tuple of (decoded value, number of bytes consumed)

    Raises:
        ProtocolDecodeError: If the frame is truncated, references an
            unassigned token, or starts with an unknown tag
    """
    reader = _Reader(data, offset)
    try:
        value = _read_value(reader)
    except RecursionError:
        raise ProtocolDecodeError("Frame nesting too deep") from None
    return value, reader.pos - offset


def decode_all(data: bytes) -> Any:
    """
    Decode a buffer that must contain exactly one frame.

    Value types follow decode_frame(): UTF-8 payloads decode to str.

    Raises:
        ProtocolDecodeError: On malformed frames or trailing bytes
    """
    value, consumed = decode_frame(data)
    if consumed != len(data):
        raise ProtocolDecodeError(
            f"{len(data) - consumed} trailing bytes after frame"
        )
    return value


def flatten_attrs(items: Any) -> Dict[str, Any]:
    """
    Rebuild a dict from an alternating key,value list.

    Non-list input yields an empty dict; a dangling key maps to None.
    """
    if not isinstance(items, list):
        return {}
    attrs: Dict[str, Any] = {}
    for i in range(0, len(items), 2):
        key = items[i]
        if not isinstance(key, str):
            continue
        attrs[key] = items[i + 1] if i + 1 < len(items) else None
    return attrs
