"""Byte ⇄ string codecs for block contents.

The host store only holds strings, but file contents are opaque bytes.
A codec converts between the two and must round-trip all 256 byte
values:

- ``Latin1Codec`` — one character per byte (code points 0-255).  This is
  the historical "binary string" form, so blocks written by older
  clients decode unchanged.
- ``Base64Codec`` — ASCII-only output, about a third larger.  Useful for
  hosts whose storage mangles control characters.
"""

import base64
import binascii
from typing import Protocol

from kvfs.errors import CorruptRecordError


class BlockCodec(Protocol):
    """Protocol for block content codecs."""

    name: str

    def encode(self, data: bytes) -> str:
        """Return the string form of *data*."""
        ...

    def decode(self, text: str) -> bytes:
        """Return the bytes encoded in *text*."""
        ...


class Latin1Codec:
    """Map each byte to the code point with the same value."""

    name = "latin-1"

    def encode(self, data: bytes) -> str:
        """Encode bytes as a latin-1 string."""
        return data.decode("latin-1")

    def decode(self, text: str) -> bytes:
        """Decode a latin-1 string.

        Raises:
            CorruptRecordError: If *text* holds a code point above 255.

        """
        try:
            return text.encode("latin-1")
        except UnicodeEncodeError as e:
            msg = f"Block content is not a binary string: {e}"
            raise CorruptRecordError(msg) from e


class Base64Codec:
    """Standard base64 with padding."""

    name = "base64"

    def encode(self, data: bytes) -> str:
        """Encode bytes as base64 text."""
        return base64.b64encode(data).decode("ascii")

    def decode(self, text: str) -> bytes:
        """Decode base64 text.

        Raises:
            CorruptRecordError: If *text* is not valid base64.

        """
        try:
            return base64.b64decode(text.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            msg = f"Block content is not valid base64: {e}"
            raise CorruptRecordError(msg) from e


_CODECS: dict[str, type[Latin1Codec] | type[Base64Codec]] = {
    Latin1Codec.name: Latin1Codec,
    Base64Codec.name: Base64Codec,
}


def get_codec(name: str) -> BlockCodec:
    """Return a codec instance by name.

    Raises:
        ValueError: If *name* is not a known codec.

    """
    codec_cls = _CODECS.get(name)
    if codec_cls is None:
        msg = f"Unknown codec: {name!r} (expected one of {sorted(_CODECS)})"
        raise ValueError(msg)
    return codec_cls()
