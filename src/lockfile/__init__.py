"""Lockfile model, codec, verification and merging."""

from .codec import dumps, parse, read_lockfile, write_lockfile
from .integrity import compute_integrity, normalize_integrity, parse_integrity
from .merger import merge
from .model import Lockfile, LockfileEntry, to_lockfile
from .verifier import ensure_fresh, ensure_integrity, verify_fresh, verify_integrity

__all__ = [
    "dumps",
    "parse",
    "read_lockfile",
    "write_lockfile",
    "compute_integrity",
    "normalize_integrity",
    "parse_integrity",
    "merge",
    "Lockfile",
    "LockfileEntry",
    "to_lockfile",
    "ensure_fresh",
    "ensure_integrity",
    "verify_fresh",
    "verify_integrity",
]
