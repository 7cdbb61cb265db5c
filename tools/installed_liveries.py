#!/usr/bin/env python3
import argparse
import logging
import os
import sys
from pathlib import Path

from livery_common import (
    LIVERIES_DIR,
    InstallScanError,
    LiveryAuditError,
    error_chain,
    merge_liveries,
    print_liveries,
)
from logsetup import COLOR_MODES, TRACE, init_logger, make_console

# Installed Livery Scanner
# Walks an installation for Liveries/<vehicle type>/<livery id> folders

logger = logging.getLogger(__name__)


def _is_dir(path):
    try:
        return path.is_dir()
    except OSError as e:
        raise InstallScanError(f"couldn't read {path}") from e


def _subdirs(path):
    """Immediate subdirectories of `path`, sorted by name."""
    try:
        with os.scandir(path) as it:
            dirs = [Path(entry.path) for entry in it if entry.is_dir()]
    except OSError as e:
        raise InstallScanError(f"couldn't read {path}") from e
    return sorted(dirs, key=lambda d: d.name)


def scan_installed_liveries(path, liveries=None):
    """Add every livery installed below `path` to `liveries` and return it.

    A missing path, or one that is not a directory, contributes nothing.
    """
    if liveries is None:
        liveries = {}

    path = Path(path)
    if not _is_dir(path):
        return liveries

    if path.name.lower() == LIVERIES_DIR:
        for vehicle_dir in _subdirs(path):
            installed = liveries.setdefault(vehicle_dir.name.lower(), set())
            for livery_dir in _subdirs(vehicle_dir):
                logger.log(TRACE, "Found stock livery %s", livery_dir)
                installed.add(livery_dir.name.lower())
    else:
        for child in _subdirs(path):
            scan_installed_liveries(child, liveries)

    return liveries


def scan_install_roots(roots):
    liveries = {}
    for root in roots:
        if not _is_dir(Path(root)):
            logger.warning("Installation root %s is not a directory, skipping", root)
        found = scan_installed_liveries(root)
        logger.info("Found liveries for %d vehicle types in %s", len(found), root)
        merge_liveries(liveries, found)
    return liveries


def main(argv=None):
    parser = argparse.ArgumentParser(description="Installed Livery Scanner")
    parser.add_argument("roots", nargs="+", help="Installation root(s) to scan for Liveries folders")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity (-v, -vv, -vvv)")
    parser.add_argument("-c", "--color", choices=COLOR_MODES, default="auto", help="Color mode for output")
    args = parser.parse_args(argv)

    init_logger(args.verbose, args.color)
    try:
        liveries = scan_install_roots(args.roots)
    except LiveryAuditError as e:
        logger.error(error_chain(e))
        sys.exit(1)

    print_liveries(make_console(args.color), "Installed liveries:", liveries)


if __name__ == "__main__":
    main()
