#!/usr/bin/env python3
import argparse
import logging
import os
import sys

from rich.markup import escape

from installed_liveries import scan_install_roots
from livery_common import LiveryAuditError, error_chain, print_liveries
from logsetup import COLOR_MODES, init_logger, make_console
from mission_liveries import read_required_liveries

# Livery Auditor
# Checks that every livery a mission asks for is installed

logger = logging.getLogger(__name__)


def reconcile(required, installed):
    """Compare required liveries against installed ones.

    Every required livery id must be installed under the same vehicle type.
    Neither map is modified.
    """
    satisfied = []
    missing_types = []
    missing_liveries = {}

    for vehicle_type in sorted(required):
        if vehicle_type not in installed:
            missing_types.append(vehicle_type)
            continue
        missing = required[vehicle_type] - installed[vehicle_type]
        if missing:
            missing_liveries[vehicle_type] = sorted(missing)
        else:
            satisfied.append(vehicle_type)

    return {
        "satisfied": satisfied,
        "missing_types": missing_types,
        "missing_liveries": missing_liveries,
    }


def audit_passed(result):
    return not result["missing_types"] and not result["missing_liveries"]


def unmet_requirements(result):
    """One line per vehicle type whose liveries aren't all installed."""
    lines = [f"no stock liveries for {t}" for t in result["missing_types"]]
    for vehicle_type, ids in result["missing_liveries"].items():
        lines.append(f"{vehicle_type} is missing liveries: {', '.join(ids)}")
    return sorted(lines)


def report_audit(result, console):
    if audit_passed(result):
        logger.info("All %d required vehicle types have their liveries installed", len(result["satisfied"]))
        return

    problems = unmet_requirements(result)
    console.print(f"[bold red]❌ {len(problems)} vehicle type(s) with unmet livery requirements:[/bold red]")
    for line in problems:
        console.print(f"     - {escape(line)}")


def write_step_summary(result):
    # Generate GitHub Step Summary if running in CI
    if "GITHUB_STEP_SUMMARY" not in os.environ:
        return
    with open(os.environ["GITHUB_STEP_SUMMARY"], "a") as f:
        f.write("### 🎨 Livery Audit\n\n")
        if audit_passed(result):
            f.write(f"All **{len(result['satisfied'])}** required vehicle types have their liveries installed.\n")
            return
        f.write("| Vehicle Type | Missing Liveries |\n")
        f.write("| :--- | :--- |\n")
        for vehicle_type in result["missing_types"]:
            f.write(f"| {vehicle_type} | *no stock liveries* |\n")
        for vehicle_type, ids in result["missing_liveries"].items():
            f.write(f"| {vehicle_type} | {', '.join(ids)} |\n")


def run(args):
    """Returns True when the run succeeded."""
    required = read_required_liveries(args.mission)

    if not args.install:
        print_liveries(make_console(args.color), "Required liveries:", required)
        return True

    installed = scan_install_roots(args.install)
    result = reconcile(required, installed)
    report_audit(result, make_console(args.color, stderr=True))
    write_step_summary(result)
    return audit_passed(result)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Livery Auditor")
    parser.add_argument("mission", help="Path to the mission (.miz archive or extracted mission script)")
    parser.add_argument(
        "-i", "--install", action="append", default=[], metavar="PATH",
        help="Installation root to scan for liveries (repeatable). Without it, only list required liveries.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity (-v, -vv, -vvv)")
    parser.add_argument("-c", "--color", choices=COLOR_MODES, default="auto", help="Color mode for output")
    args = parser.parse_args(argv)

    init_logger(args.verbose, args.color)
    try:
        ok = run(args)
    except LiveryAuditError as e:
        logger.error(error_chain(e))
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
