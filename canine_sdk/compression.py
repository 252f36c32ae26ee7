"""
Tagged text compression for tree node contents.
"""

import base64
import binascii
import zlib

from canine_sdk.errors import CanineDecodeError

COMPRESSION_TAG = "jklpc1"


def compress_data(text: str) -> str:
    """Compress text into a tagged, printable string."""
    packed = base64.b64encode(zlib.compress(text.encode("utf-8"), 9)).decode("ascii")
    return f"{COMPRESSION_TAG}{packed}"


def decompress_data(text: str) -> str:
    """
    Reverse compress_data.

    Raises:
        CanineDecodeError: If the input is not tagged or does not decompress
    """
    if not text.startswith(COMPRESSION_TAG):
        raise CanineDecodeError("Invalid Decompression String")
    try:
        raw = zlib.decompress(base64.b64decode(text[len(COMPRESSION_TAG) :]))
        return raw.decode("utf-8")
    except (binascii.Error, zlib.error, UnicodeDecodeError) as e:
        raise CanineDecodeError(f"Decompression failed: {e}")
