"""Shared pieces of the livery audit tools.

A livery map is a plain dict of vehicle type -> set of livery ids, both
lower-cased on insertion. Two of them exist per run: the liveries a mission
requires and the liveries installed on disk.
"""

from rich.pretty import Pretty

# Folder name that marks a livery tree inside an installation
LIVERIES_DIR = "liveries"


class LiveryAuditError(Exception):
    """Base class for every hard failure of the audit tools."""


class MissionReadError(LiveryAuditError):
    """The mission file could not be opened or mapped."""


class MissionParseError(LiveryAuditError):
    """The mission script could not be decoded or walked."""


class InstallScanError(LiveryAuditError):
    """An installation directory could not be listed."""


def add_livery(liveries, vehicle_type, livery_id):
    liveries.setdefault(vehicle_type.lower(), set()).add(livery_id.lower())


def merge_liveries(target, other):
    """Union `other` into `target` in place and return `target`."""
    for vehicle_type, ids in other.items():
        target.setdefault(vehicle_type, set()).update(ids)
    return target


def sorted_liveries(liveries):
    return {k: sorted(liveries[k]) for k in sorted(liveries)}


def error_chain(exc):
    """Render an exception and everything that caused it, outermost first."""
    lines = [str(exc) or type(exc).__name__]
    causes = []
    seen = {id(exc)}
    cause = exc.__cause__ or exc.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        causes.append(str(cause) or type(cause).__name__)
        cause = cause.__cause__ or cause.__context__

    if causes:
        lines.append("")
        lines.append("Caused by:")
        for i, msg in enumerate(causes):
            lines.append(f"    {i}: {msg}")
    return "\n".join(lines)


def print_liveries(console, title, liveries):
    console.print(title)
    console.print(Pretty(sorted_liveries(liveries)))
