"""Integrity digests in ``<algorithm>-<base64 digest>`` form."""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
from typing import Tuple

from constants import Constants

SUPPORTED_ALGORITHMS = ("sha256", "sha384", "sha512")

_DIGEST_SIZES = {"sha256": 32, "sha384": 48, "sha512": 64}
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def compute_integrity(data: bytes, algorithm: str = "") -> str:
    """Digest ``data`` and return it as ``algorithm-base64``."""
    algorithm = (algorithm or Constants.DEFAULT_INTEGRITY_ALGORITHM).lower()
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported integrity algorithm: {algorithm}")
    digest = hashlib.new(algorithm, data).digest()
    return f"{algorithm}-{base64.b64encode(digest).decode('ascii')}"


def parse_integrity(value: str) -> Tuple[str, bytes]:
    """Split an integrity string into (algorithm, raw digest bytes).

    Accepts the legacy ``sha256-<hex>`` form written by older clients and a
    bare hex sha256 as reported in registry ``content_hash`` fields.

    Raises:
        ValueError: unknown algorithm or undecodable digest.
    """
    text = (value or "").strip()
    if "-" not in text:
        if _HEX_RE.match(text) and len(text) == 64:
            return "sha256", bytes.fromhex(text)
        raise ValueError(f"Malformed integrity value: {value!r}")
    algorithm, encoded = text.split("-", 1)
    algorithm = algorithm.lower()
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported integrity algorithm: {algorithm}")
    size = _DIGEST_SIZES[algorithm]
    if len(encoded) == size * 2 and _HEX_RE.match(encoded):
        return algorithm, bytes.fromhex(encoded)
    try:
        digest = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Malformed integrity value: {value!r}") from exc
    if len(digest) != size:
        raise ValueError(f"Digest length {len(digest)} does not match {algorithm}")
    return algorithm, digest


def normalize_integrity(value: str) -> str:
    """Rewrite any accepted integrity form as ``algorithm-base64``."""
    algorithm, digest = parse_integrity(value)
    return f"{algorithm}-{base64.b64encode(digest).decode('ascii')}"
