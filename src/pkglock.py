"""pkglock - dependency resolution and lockfile management for prpm packages.

    Returns:
        int: Exit code
"""
import json
import logging
import sys

from constants import Constants, ExitCodes
from common.logging_utils import extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_overrides, load_config, setup_logging
from errors import (
    IntegrityMismatch,
    LockfileError,
    LockfileStale,
    PkglockError,
    RegistryError,
    ResolutionError,
)
from lockfile.codec import read_lockfile, write_lockfile
from lockfile.merger import merge
from lockfile.model import Lockfile, provider_integrity, to_lockfile
from lockfile.verifier import ensure_fresh, ensure_integrity, verify_fresh
from manifest import read_manifest, write_manifest
from registry.client import RegistryClient
from registry.snapshot import SnapshotProvider
from resolver.builder import GraphBuilder
from resolver.graph import render_tree
from versioning.parser import tokenize_package

logger = logging.getLogger(__name__)


class UsageError(Exception):
    """Bad command-line input detected after argument parsing."""


def _out(text=""):
    sys.stdout.write(text + "\n")


def build_provider(args):
    """Registry API client, or an offline snapshot when --registry-snapshot is given."""
    snapshot = getattr(args, "REGISTRY_SNAPSHOT", None)
    if snapshot:
        return SnapshotProvider.from_file(snapshot)
    return RegistryClient(Constants.REGISTRY_URL, token=Constants.REGISTRY_TOKEN)


def build_builder(args):
    provider = build_provider(args)
    try:
        return GraphBuilder(provider, max_depth=Constants.MAX_DEPTH, max_workers=Constants.MAX_CONCURRENCY)
    except ValueError as exc:
        raise UsageError(str(exc)) from exc


def _warn_missing_integrity(lock):
    missing = [name for name, entry in sorted(lock.entries.items()) if not entry.integrity]
    if missing:
        logger.warning(
            "Registry reported no integrity digest for: %s", ", ".join(missing)
        )


def _write(lock, existing, directory):
    """Write ``lock`` unless its entries match ``existing``."""
    if lock.same_entries(existing):
        logger.info("Lockfile already up to date.")
        return False
    write_lockfile(lock, directory)
    return True


def _describe_changes(existing, lock):
    before = existing.versions() if existing is not None else {}
    after = lock.versions()
    lines = []
    for name in sorted(set(before) | set(after)):
        old, new = before.get(name), after.get(name)
        if old == new:
            continue
        if old is None:
            lines.append(f"+ {name}@{new}")
        elif new is None:
            lines.append(f"- {name}@{old}")
        else:
            lines.append(f"~ {name} {old} -> {new}")
    return lines


def cmd_install(args):
    directory = args.DIRECTORY
    manifest = read_manifest(directory)
    existing = read_lockfile(directory)

    if args.FROZEN:
        ensure_fresh(existing, manifest.dependencies)
        count = len(existing.entries) if existing is not None else 0
        _out(f"{Constants.LOCKFILE_NAME} is up to date ({count} packages).")
        return ExitCodes.SUCCESS.value

    preferred = existing.versions() if existing is not None else {}
    graph = build_builder(args).resolve_project(manifest.dependencies, preferred=preferred)
    lock = to_lockfile(graph, provider_integrity)
    _warn_missing_integrity(lock)
    changes = _describe_changes(existing, lock)
    _write(lock, existing, directory)
    for line in changes:
        _out(line)
    _out(render_tree(graph))
    return ExitCodes.SUCCESS.value


def cmd_update(args, upgrade=False):
    """Re-resolve the named packages; everything else stays pinned.

    ``upgrade`` also relaxes the named top-level ranges to "latest" and
    records the new caret range in prpm.json.
    """
    directory = args.DIRECTORY
    manifest = read_manifest(directory)
    existing = read_lockfile(directory)
    locked = existing.versions() if existing is not None else {}

    requested = set(args.PACKAGES or [])
    unknown = sorted(requested - set(manifest.dependencies) - set(locked))
    if unknown:
        raise UsageError("Not a dependency of this project: " + ", ".join(unknown))
    touched = requested or set(manifest.dependencies)
    if requested:
        preferred = {name: version for name, version in locked.items() if name not in touched}
    else:
        preferred = {}

    constraints = dict(manifest.dependencies)
    if upgrade:
        for name in touched & set(constraints):
            constraints[name] = "latest"

    graph = build_builder(args).resolve_project(constraints, preferred=preferred)
    lock = merge(existing, graph, touched, provider_integrity, roots=manifest.dependencies)
    _warn_missing_integrity(lock)

    new_manifest = manifest
    if upgrade:
        for name in sorted(touched & set(manifest.dependencies)):
            new_manifest = new_manifest.with_dependency(name, f"^{graph[name].version}")

    changes = _describe_changes(existing, lock)
    _write(lock, existing, directory)
    # prpm.json only after prpm.lock is on disk
    if new_manifest != manifest:
        write_manifest(new_manifest, directory)
    if not changes:
        _out("Everything is up to date.")
    for line in changes:
        _out(line)
    return ExitCodes.SUCCESS.value


def cmd_resolve(args):
    name, constraint = tokenize_package(args.PACKAGE)
    graph = build_builder(args).resolve(name, constraint)
    if args.JSON:
        result = {
            "package_name": name,
            "version": graph[name].version,
            "resolved": graph.resolved_map(),
            "tree": graph.nested_tree(),
        }
        _out(json.dumps(result, indent=2))
    else:
        _out(render_tree(graph, show_kind=True))
    return ExitCodes.SUCCESS.value


def _load_lock_or_fail(directory):
    lock = read_lockfile(directory)
    if lock is None:
        raise FileNotFoundError(f"No {Constants.LOCKFILE_NAME} in {directory}; run 'pkglock install' first")
    return lock


def cmd_tree(args):
    lock = _load_lock_or_fail(args.DIRECTORY)
    try:
        roots = dict(read_manifest(args.DIRECTORY).dependencies)
    except FileNotFoundError:
        roots = None
    graph = lock.to_graph(roots)
    if args.JSON:
        _out(json.dumps(graph.to_dict(), indent=2))
    else:
        _out(render_tree(graph, show_kind=True))
    return ExitCodes.SUCCESS.value


def cmd_verify(args):
    manifest = read_manifest(args.DIRECTORY)
    lock = read_lockfile(args.DIRECTORY)
    result = verify_fresh(lock, manifest.dependencies)
    if args.JSON:
        _out(json.dumps({
            "fresh": result.fresh,
            "stale": result.stale_packages,
            "reasons": [r.to_dict() for r in result.stale],
        }, indent=2))
    elif result.fresh:
        _out(f"{Constants.LOCKFILE_NAME} is up to date.")
    else:
        for reason in result.stale:
            _out(f"stale: {reason.describe()}")
    return ExitCodes.SUCCESS.value if result.fresh else ExitCodes.LOCKFILE_STALE.value


def cmd_check_integrity(args):
    lock: Lockfile = _load_lock_or_fail(args.DIRECTORY)
    entry = lock.get(args.PACKAGE)
    if entry is None:
        raise UsageError(f"{args.PACKAGE} is not in {Constants.LOCKFILE_NAME}")
    with open(args.ARTIFACT, "rb") as fh:
        data = fh.read()
    digest = ensure_integrity(entry, data)
    _out(f"{entry.name}@{entry.version}: {digest} OK")
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "install": cmd_install,
    "update": cmd_update,
    "upgrade": lambda a: cmd_update(a, upgrade=True),
    "resolve": cmd_resolve,
    "tree": cmd_tree,
    "verify": cmd_verify,
    "check-integrity": cmd_check_integrity,
}


def _report(exc):
    """Render a structured error for the user."""
    sys.stderr.write(f"ERROR: {exc}\n")
    if isinstance(exc, LockfileStale):
        for reason in exc.reasons:
            sys.stderr.write(f"  - {reason.describe()}\n")
    if is_debug_enabled(logger) and isinstance(exc, PkglockError):
        logger.debug("Error detail", extra=extra_context(event="error", component="cli",
                                                         outcome=exc.code))
        sys.stderr.write(json.dumps(exc.to_dict(), indent=2, default=str) + "\n")


def run(argv=None):
    """Parse ``argv``, run the sub-command and map failures to exit codes."""
    args = parse_args(argv)
    setup_logging(args)
    try:
        load_config(args)
    except (OSError, ValueError) as exc:
        sys.stderr.write(f"ERROR: could not load config: {exc}\n")
        return ExitCodes.FILE_ERROR.value
    apply_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action)
        )

    try:
        return COMMANDS[args.action](args)
    except LockfileStale as exc:
        _report(exc)
        return ExitCodes.LOCKFILE_STALE.value
    except IntegrityMismatch as exc:
        _report(exc)
        return ExitCodes.INTEGRITY_ERROR.value
    except RegistryError as exc:
        _report(exc)
        return ExitCodes.CONNECTION_ERROR.value
    except ResolutionError as exc:
        _report(exc)
        return ExitCodes.RESOLUTION_ERROR.value
    except LockfileError as exc:
        _report(exc)
        return ExitCodes.FILE_ERROR.value
    except UsageError as exc:
        _report(exc)
        return ExitCodes.USAGE_ERROR.value
    except (OSError, ValueError) as exc:
        _report(exc)
        return ExitCodes.FILE_ERROR.value


def main():
    """Main function of the program."""
    sys.exit(run())


if __name__ == "__main__":
    main()
