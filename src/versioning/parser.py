"""Token parsing utilities for declared ranges and ``name@range`` tokens."""

from typing import Optional, Tuple, Union

from .models import ResolutionMode, VersionSpec

_LATEST_TOKENS = ("", "*", "x", "latest")


def _determine_resolution_mode(spec: str) -> ResolutionMode:
    """Determine resolution mode from spec string."""
    if spec.strip().lower() in _LATEST_TOKENS:
        return ResolutionMode.LATEST
    range_ops = ['^', '~', '*', 'x', 'X', ' - ', '<', '>', '=', '|', ' ']
    if any(op in spec for op in range_ops):
        return ResolutionMode.RANGE
    return ResolutionMode.EXACT


def _determine_include_prerelease(spec: str) -> bool:
    """Prereleases are only eligible when the range itself names one."""
    return any(pre in spec.lower() for pre in ['-pre', '-rc', '-alpha', '-beta', '-dev', '-next'])


def parse_constraint(raw: Union[str, VersionSpec, None]) -> VersionSpec:
    """Construct a VersionSpec from a declared range string.

    ``None``, ``""``, ``"*"`` and ``"latest"`` select the highest version.
    """
    if isinstance(raw, VersionSpec):
        return raw
    spec = (raw or "").strip()
    mode = _determine_resolution_mode(spec)
    if mode == ResolutionMode.LATEST:
        return VersionSpec(raw=spec, mode=mode, include_prerelease=False)
    return VersionSpec(raw=spec, mode=mode, include_prerelease=_determine_include_prerelease(spec))


def tokenize_package(token: str) -> Tuple[str, Optional[str]]:
    """Split ``name@range`` into (name, range or None).

    Scoped names keep their leading ``@``: ``@scope/pkg@^1.0.0`` gives
    ``("@scope/pkg", "^1.0.0")``.
    """
    s = token.strip()
    idx = s.rfind('@')
    if idx <= 0:
        return s, None
    name = s[:idx].strip()
    spec = s[idx + 1:].strip()
    return name, (spec or None)
