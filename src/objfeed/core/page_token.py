"""
Page tokens derived from an object name.

A token is base64(tag byte, varint byte length, UTF-8 name), the record a
store uses to continue a listing right after that name.
"""

from __future__ import annotations

import base64
import binascii
from typing import Tuple

from objfeed.core.constants import MAX_OBJECT_NAME_BYTES, PAGE_TOKEN_TAG
from objfeed.errors import ConfigurationError
from objfeed.utils.logging import get_logger

logger = get_logger(__name__)


def encode_varint(value: int) -> bytes:
    """Base-128 varint: low 7 bits per byte, high bit set on all but the last."""
    if value < 0:
        raise ValueError(f"varint value must be >= 0, got {value}")
    out = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            return bytes(out)


def decode_varint(data: bytes, pos: int = 0) -> Tuple[int, int]:
    """
    Decode a varint starting at pos.

    Returns:
        (value, position after the varint)
    """
    value = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("Truncated varint")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7


def encode_page_token(name: str) -> str:
    """
    Build the page token that resumes a listing after name.

    Raises:
        ConfigurationError: If name exceeds MAX_OBJECT_NAME_BYTES
    """
    utf8 = name.encode("utf-8")
    if len(utf8) > MAX_OBJECT_NAME_BYTES:
        raise ConfigurationError(
            f"last_path {name!r} is too long to encode. "
            f"Maximum allowed is {MAX_OBJECT_NAME_BYTES} bytes"
        )

    record = bytes([PAGE_TOKEN_TAG]) + encode_varint(len(utf8)) + utf8
    token = base64.b64encode(record).decode("ascii")
    logger.debug("page_token_encoded", name=name, name_bytes=len(utf8), token=token)
    return token


def decode_page_token(token: str) -> str:
    """
    Recover the object name from a page token.

    Raises:
        ConfigurationError: If the token is not a valid name record
    """
    try:
        record = base64.b64decode(token.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ConfigurationError(f"Invalid page token {token!r}: {e}") from e

    if not record or record[0] != PAGE_TOKEN_TAG:
        raise ConfigurationError(f"Invalid page token {token!r}: unexpected tag")
    try:
        length, pos = decode_varint(record, 1)
    except ValueError as e:
        raise ConfigurationError(f"Invalid page token {token!r}: {e}") from e
    if len(record) - pos != length:
        raise ConfigurationError(
            f"Invalid page token {token!r}: declared {length} bytes, "
            f"found {len(record) - pos}"
        )
    try:
        return record[pos:].decode("utf-8")
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"Invalid page token {token!r}: {e}") from e


__all__ = ["encode_varint", "decode_varint", "encode_page_token", "decode_page_token"]
