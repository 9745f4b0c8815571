"""Gzip payload decoding."""

import zlib
from typing import BinaryIO

from httpcat.core.errors import PayloadDecodeError

__all__ = ["decode_gzip_payload", "GZIP_MAGIC"]

GZIP_MAGIC = b"\x1f\x8b"

# zlib window bits selecting the gzip container (header and CRC trailer).
_GZIP_WBITS = 16 + zlib.MAX_WBITS


def decode_gzip_payload(stream: BinaryIO, max_size: int | None = None) -> bytes:
    """Read a gzip-compressed stream and return the decompressed bytes.

    The stream is borrowed: it is read to the end but never closed.
    The whole payload is decoded up front, so corrupt or truncated data
    is rejected before anything goes on the wire and every retry can
    resend the complete body. Blocking; run it off the event loop.

    Args:
        stream: Readable binary stream holding one or more gzip members.
        max_size: Largest decompressed size accepted, in bytes. Inflation
            stops as soon as the output would exceed it. None means no limit.

    Returns:
        Decompressed payload.

    Raises:
        PayloadDecodeError: If the data is empty, not gzip, truncated,
            corrupt or larger than ``max_size`` once decompressed.
    """
    data = stream.read()
    if not data.startswith(GZIP_MAGIC):
        raise PayloadDecodeError("Unable to uncompress payload: missing gzip header")

    out = bytearray()
    while data:
        if not data.startswith(GZIP_MAGIC):
            # Zero padding after the last member is tolerated, like gzip(1).
            if not data.strip(b"\x00"):
                break
            raise PayloadDecodeError("Unable to uncompress payload: trailing garbage after gzip data")

        member = zlib.decompressobj(_GZIP_WBITS)
        # max_length=0 means unbounded; one byte past the limit proves overflow.
        limit = 0 if max_size is None else max_size - len(out) + 1
        try:
            out += member.decompress(data, limit)
        except zlib.error as e:
            raise PayloadDecodeError(f"Unable to uncompress payload: {e}") from e

        if max_size is not None and (len(out) > max_size or member.unconsumed_tail):
            raise PayloadDecodeError(
                f"Unable to uncompress payload: larger than {max_size} bytes once decompressed"
            )
        if not member.eof:
            raise PayloadDecodeError(
                "Unable to uncompress payload: compressed data ended before the end-of-stream marker"
            )
        data = member.unused_data

    return bytes(out)
