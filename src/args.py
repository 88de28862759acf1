"""Argument parsing functionality for pkglock."""

import argparse


def _add_common(parser):
    """Options shared by every sub-command."""
    parser.add_argument("-C", "--directory",
                        dest="DIRECTORY",
                        help="Project directory containing prpm.json / prpm.lock (default: current directory)",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("--registry",
                        dest="REGISTRY_URL",
                        help="Registry base URL",
                        action="store",
                        type=str)
    parser.add_argument("--registry-snapshot",
                        dest="REGISTRY_SNAPSHOT",
                        help="Resolve offline against a JSON registry snapshot instead of the registry API",
                        action="store",
                        type=str)
    parser.add_argument("--max-depth",
                        dest="MAX_DEPTH",
                        help="Maximum dependency chain length",
                        action="store",
                        type=int)
    parser.add_argument("--concurrency",
                        dest="CONCURRENCY",
                        help="Parallel metadata lookups (1 disables prefetching)",
                        action="store",
                        type=int)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='WARNING')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="pkglock",
        description="pkglock - dependency resolution and lockfile management for prpm packages",
        add_help=True,
    )
    sub = parser.add_subparsers(dest="action", metavar="command")
    sub.required = True

    install = sub.add_parser("install", help="Resolve prpm.json and write prpm.lock")
    _add_common(install)
    install.add_argument("--frozen", "--frozen-lockfile",
                         dest="FROZEN",
                         help="Never re-resolve; fail if prpm.lock is missing or out of date",
                         action="store_true")

    update = sub.add_parser("update", help="Re-resolve packages within their declared ranges")
    _add_common(update)
    update.add_argument("PACKAGES", nargs="*", help="Packages to update (default: all)")

    upgrade = sub.add_parser("upgrade", help="Upgrade packages to their latest versions, past declared ranges")
    _add_common(upgrade)
    upgrade.add_argument("PACKAGES", nargs="*", help="Packages to upgrade (default: all)")

    resolve = sub.add_parser("resolve", help="Resolve one registry package and show its dependency tree")
    _add_common(resolve)
    resolve.add_argument("PACKAGE", help="Package name, optionally name@range")
    resolve.add_argument("--json",
                         dest="JSON",
                         help="Print the machine-readable resolution result",
                         action="store_true")

    tree = sub.add_parser("tree", help="Show the locked dependency tree")
    _add_common(tree)
    tree.add_argument("--json",
                      dest="JSON",
                      help="Print the nested tree as JSON",
                      action="store_true")

    verify = sub.add_parser("verify", help="Check prpm.lock against prpm.json")
    _add_common(verify)
    verify.add_argument("--json",
                        dest="JSON",
                        help="Print stale reasons as JSON",
                        action="store_true")

    integrity = sub.add_parser("check-integrity", help="Verify a downloaded artifact against prpm.lock")
    _add_common(integrity)
    integrity.add_argument("PACKAGE", help="Locked package name")
    integrity.add_argument("ARTIFACT", help="Path to the downloaded artifact")

    return parser.parse_args(argv)
