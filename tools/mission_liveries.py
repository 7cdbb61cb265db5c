#!/usr/bin/env python3
import argparse
import logging
import mmap
import sys
import zipfile
from contextlib import contextmanager

from lupa import LuaError, LuaRuntime, lua_type

from livery_common import (
    LiveryAuditError,
    MissionParseError,
    MissionReadError,
    add_livery,
    error_chain,
    print_liveries,
)
from logsetup import COLOR_MODES, TRACE, init_logger, make_console

# Mission Livery Extractor
# Finds every unit in a mission that asks for a livery, at any nesting depth

logger = logging.getLogger(__name__)

MISSION_MEMBER = "mission"


@contextmanager
def open_mission_script(mission_path):
    """Yield the mission script bytes, valid only inside the block.

    A .miz is a zip archive holding the script as its `mission` member. Any
    other file is taken to be the script itself and is memory-mapped.
    """
    if zipfile.is_zipfile(mission_path):
        try:
            with zipfile.ZipFile(mission_path) as zf:
                members = {n.lower(): n for n in zf.namelist()}
                if MISSION_MEMBER not in members:
                    raise MissionReadError("mission archive has no mission script")
                script = zf.read(members[MISSION_MEMBER])
        except (OSError, zipfile.BadZipFile) as e:
            raise MissionReadError("couldn't read mission archive") from e
        yield script
        return

    try:
        f = open(mission_path, "rb")
    except OSError as e:
        raise MissionReadError("couldn't open mission file") from e

    with f:
        try:
            mapped = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
        except (OSError, ValueError) as e:
            raise MissionReadError("couldn't map mission file") from e
        with mapped:
            yield mapped


def decode_mission(script):
    """Run the mission script and return its `mission` global (or None)."""
    lua = LuaRuntime(encoding=None)
    try:
        # execute() takes bytes only, so the mapping is copied here
        lua.execute(bytes(script))
        return lua.globals()[b"mission"]
    except LuaError as e:
        raise MissionParseError("couldn't parse mission") from e


def _text(value):
    return value.decode("utf-8", errors="replace")


def _key_text(key, name):
    if isinstance(key, bytes):
        return _text(key)
    if isinstance(key, int) and not isinstance(key, bool):
        return str(key)
    raise MissionParseError(f"couldn't parse {name}: unexpected key {key!r}")


def livery_search(table, liveries, name):
    """Collect liveries from `table` and everything nested below it.

    A table holding both `livery_id` and `type` as strings is a unit and
    is not searched any deeper. Anything else is a container whose child
    tables are searched in turn, `name` growing by one dotted segment each
    level down.
    """
    logger.log(TRACE, "Searching %s", name)
    try:
        livery_id = table[b"livery_id"]
        unit_type = table[b"type"]
    except LuaError as e:
        raise MissionParseError(f"couldn't parse {name}") from e

    if isinstance(livery_id, bytes) and isinstance(unit_type, bytes):
        add_livery(liveries, _text(unit_type), _text(livery_id))
        return

    try:
        children = list(table.items())
    except LuaError as e:
        raise MissionParseError(f"couldn't parse {name}") from e

    for key, value in children:
        if lua_type(value) != "table":
            continue
        livery_search(value, liveries, f"{name}.{_key_text(key, name)}")


def extract_liveries(mission):
    """Map each vehicle type in `mission.coalition` to the liveries it needs."""
    try:
        coalitions = mission[b"coalition"] if lua_type(mission) == "table" else None
        if lua_type(coalitions) != "table":
            raise MissionParseError("couldn't parse mission.coalitions")
        pairs = list(coalitions.items())
    except LuaError as e:
        raise MissionParseError("couldn't parse mission.coalitions") from e

    liveries = {}
    for key, value in pairs:
        if not isinstance(key, bytes):
            raise MissionParseError(f"couldn't parse mission.coalitions: unexpected coalition key {key!r}")
        name = _text(key)
        try:
            if lua_type(value) != "table":
                raise MissionParseError(f"{name} is not a table")
            livery_search(value, liveries, name)
        except MissionParseError as e:
            raise MissionParseError(f"couldn't parse {name} coalition") from e
    return liveries


def read_required_liveries(mission_path):
    with open_mission_script(mission_path) as script:
        mission = decode_mission(script)
    liveries = extract_liveries(mission)
    logger.info("Mission requires liveries for %d vehicle types", len(liveries))
    return liveries


def main(argv=None):
    parser = argparse.ArgumentParser(description="Mission Livery Extractor")
    parser.add_argument("mission", help="Path to the mission (.miz archive or extracted mission script)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity (-v, -vv, -vvv)")
    parser.add_argument("-c", "--color", choices=COLOR_MODES, default="auto", help="Color mode for output")
    args = parser.parse_args(argv)

    init_logger(args.verbose, args.color)
    try:
        liveries = read_required_liveries(args.mission)
    except LiveryAuditError as e:
        logger.error(error_chain(e))
        sys.exit(1)

    print_liveries(make_console(args.color), "Required liveries:", liveries)


if __name__ == "__main__":
    main()
