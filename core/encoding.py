"""
Response compression (content negotiation via Accept-Encoding).
"""

import gzip
import logging
import zlib
from dataclasses import dataclass
from typing import Optional, Union

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

# Preferred order when the client weights schemes equally
SUPPORTED_SCHEMES = ("gzip", "deflate")


@dataclass
class EncodedPayload:
    """Result of compress_for_response()."""
    payload: bytes
    content_encoding: Optional[str] = None


def as_bytes(data: Union[bytes, bytearray, str, None], encoding: str = DEFAULT_ENCODING) -> bytes:
    """Convert response data to bytes."""
    if data is None:
        return b""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    return str(data).encode(encoding or DEFAULT_ENCODING)


def parse_accept_encoding(header: Optional[str]) -> list[str]:
    """
    Parse an Accept-Encoding header into supported schemes.

    Args:
        header: Raw header value, e.g. "gzip;q=0.5, deflate"

    Returns:
        Supported schemes ordered by descending q-value. Schemes with q=0
        are left out, "*" stands for every supported scheme not listed.
    """
    weights: dict[str, float] = {}
    wildcard: Optional[float] = None

    for item in (header or "").split(","):
        parts = [p.strip() for p in item.split(";")]
        name = parts[0].lower()
        if not name:
            continue

        q = 1.0
        for param in parts[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    q = float(value.strip())
                except ValueError:
                    q = 0.0

        if name == "*":
            wildcard = q
        elif name in SUPPORTED_SCHEMES:
            weights[name] = q

    if wildcard is not None:
        for scheme in SUPPORTED_SCHEMES:
            weights.setdefault(scheme, wildcard)

    accepted = [s for s in SUPPORTED_SCHEMES if weights.get(s, 0) > 0]
    # sorted() is stable, so equal weights keep the preferred order
    return sorted(accepted, key=lambda s: weights[s], reverse=True)


def _compress(data: bytes, scheme: str) -> bytes:
    if scheme == "gzip":
        return gzip.compress(data)
    if scheme == "deflate":
        return zlib.compress(data)
    raise ValueError(f"Unsupported content encoding: {scheme}")


async def compress_for_response(
    data: Union[bytes, str, None],
    accept_encoding: Optional[str],
    encoding: str = DEFAULT_ENCODING,
) -> EncodedPayload:
    """
    Compress response data for the client if that is possible and worth it.

    Compression is best-effort: on any compressor error the original bytes
    are returned without a content encoding.
    """
    raw = as_bytes(data, encoding)

    schemes = parse_accept_encoding(accept_encoding)
    if not raw or not schemes:
        return EncodedPayload(raw)

    scheme = schemes[0]
    try:
        compressed = await run_in_threadpool(_compress, raw, scheme)
    except Exception as e:
        logger.warning(f"{scheme} compression failed, sending uncompressed: {e}")
        return EncodedPayload(raw)

    if len(compressed) >= len(raw):
        return EncodedPayload(raw)
    return EncodedPayload(compressed, scheme)
