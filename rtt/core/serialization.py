import json
import os
from pathlib import Path
from rtt.common.logger import log
from rtt.core.errors import LoadResult, ProgramParseError
from rtt.core.model import Entry, EntryType, ProgramRecord, TrainingProgramListData, DEFAULT_PROGRAM_NAME

#region === Dict conversion ===

# The key names below are the on-disk contract, they have to stay exactly like this for old files to load.

def entry_to_dict(entry):
    return {
        "Name": entry.name,
        "Duration": entry.duration,
        "Type": int(entry.type),
        "TrainingPackCode": entry.training_pack_code,
        "WorkshopMapPath": entry.workshop_map_path,
    }

def program_to_dict(program):
    return {
        "Id": program.id,
        "Name": program.name,
        "Duration": program.duration,
        "Entries": [entry_to_dict(entry) for entry in program.entries],
        "ReadOnly": program.read_only,
    }

def list_to_dict(data):
    return {
        "TrainingProgramOrder": list(data.order),
        "TrainingProgramData": {program_id: program_to_dict(program) for program_id, program in data.programs.items()},
        "WorkshopFolderLocation": data.workshop_folder_location,
    }

# Pulls `key` out of `source`, checking its type. Missing keys fall back to `default` and get recorded in
# `defaulted`, present keys with the wrong type are a parse error.
def _field(source, key, expected, default, where, defaulted):
    if key not in source:
        defaulted.add(f"{where}.{key}")
        return default
    value = source[key]
    # bool is an int subclass, but "Duration": true is not a duration.
    if expected is int and isinstance(value, bool):
        raise ProgramParseError(f"'{where}.{key}' should be an integer, got a boolean")
    if not isinstance(value, expected):
        raise ProgramParseError(f"'{where}.{key}' should be {expected.__name__}, got {type(value).__name__}")
    return value

def _duration(source, where, defaulted):
    duration = _field(source, "Duration", int, 0, where, defaulted)
    if duration < 0:
        raise ProgramParseError(f"'{where}.Duration' can't be negative (got {duration})")
    return duration

def entry_from_dict(source, where="Entry", defaulted=None):
    defaulted = set() if defaulted is None else defaulted
    if not isinstance(source, dict):
        raise ProgramParseError(f"'{where}' should be an object, got {type(source).__name__}")

    raw_type = _field(source, "Type", int, int(EntryType.TIMER), where, defaulted)
    try:
        entry_type = EntryType(raw_type)
    except ValueError:
        raise ProgramParseError(f"'{where}.Type' has unknown entry type {raw_type}") from None

    return Entry(
        name=_field(source, "Name", str, "", where, defaulted),
        duration=_duration(source, where, defaulted),
        type=entry_type,
        training_pack_code=_field(source, "TrainingPackCode", str, "", where, defaulted),
        workshop_map_path=_field(source, "WorkshopMapPath", str, "", where, defaulted),
    )

# Builds a ProgramRecord out of a decoded JSON object. Only "Id" is mandatory, since a program without one can't be
# placed in the list.
def program_from_dict(source, where="TrainingProgram", defaulted=None):
    defaulted = set() if defaulted is None else defaulted
    if not isinstance(source, dict):
        raise ProgramParseError(f"'{where}' should be an object, got {type(source).__name__}")
    if "Id" not in source:
        raise ProgramParseError(f"'{where}' has no Id")
    program_id = _field(source, "Id", str, None, where, defaulted)

    raw_entries = _field(source, "Entries", list, [], where, defaulted)
    entries = [entry_from_dict(raw, f"{where}.Entries[{i}]", defaulted) for i, raw in enumerate(raw_entries)]

    return ProgramRecord(
        id=program_id,
        name=_field(source, "Name", str, DEFAULT_PROGRAM_NAME, where, defaulted),
        duration=_duration(source, where, defaulted),
        entries=entries,
        read_only=_field(source, "ReadOnly", bool, False, where, defaulted),
    )

# Builds a full list snapshot, refusing anything where the order and the program data don't line up one to one.
def list_from_dict(source, defaulted=None):
    defaulted = set() if defaulted is None else defaulted
    if not isinstance(source, dict):
        raise ProgramParseError(f"Training program list should be an object, got {type(source).__name__}")

    order = _field(source, "TrainingProgramOrder", list, [], "TrainingProgramList", defaulted)
    raw_programs = _field(source, "TrainingProgramData", dict, {}, "TrainingProgramList", defaulted)
    workshop = _field(source, "WorkshopFolderLocation", str, "", "TrainingProgramList", defaulted)

    for program_id in order:
        if not isinstance(program_id, str):
            raise ProgramParseError(f"TrainingProgramOrder should only hold strings, got {type(program_id).__name__}")
    if len(set(order)) != len(order):
        raise ProgramParseError("TrainingProgramOrder lists the same program more than once")

    programs = {}
    for key, raw in raw_programs.items():
        program = program_from_dict(raw, f"TrainingProgramData[{key}]", defaulted)
        if program.id != key:
            raise ProgramParseError(f"TrainingProgramData key '{key}' doesn't match the program's Id '{program.id}'")
        programs[key] = program

    if set(order) != set(programs):
        missing = sorted(set(order) - set(programs))
        orphaned = sorted(set(programs) - set(order))
        raise ProgramParseError(f"TrainingProgramOrder and TrainingProgramData disagree "
                                f"(no data for: {missing}, not in order: {orphaned})")

    return TrainingProgramListData(order=tuple(order), programs=programs, workshop_folder_location=workshop)

#endregion === Dict conversion ===

#region === Files ===

# Reads and decodes a JSON file, then hands the decoded object to `convert`. Every failure is logged here and handed
# back as a LoadResult, nothing is raised.
def _read_document(path, convert, what):
    path = Path(path)
    if not path.exists():
        log.warning(f"Can't load {what}, '{path}' does not exist.")
        return LoadResult.io_error(f"File does not exist: {path}")
    try:
        raw = path.read_bytes()
    except OSError as e:
        log.warning(f"Can't read {what} from '{path}': {e}")
        return LoadResult.io_error(str(e))

    # From here on the file was readable, so anything that goes wrong is the content's fault.
    try:
        serialized = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        log.error(f"Data in '{path}' is not valid UTF-8: {e}")
        return LoadResult.parse_error(f"Not valid UTF-8: {e}")
    try:
        document = json.loads(serialized)
    except json.JSONDecodeError as e:
        log.error(f"Could not parse JSON data in '{path}': {e}")
        log.error(f"Data in file was: {serialized}")
        return LoadResult.parse_error(f"Invalid JSON: {e}")
    except RecursionError:
        log.error(f"Could not parse JSON data in '{path}': nested too deeply")
        return LoadResult.parse_error("Invalid JSON: nested too deeply")

    defaulted = set()
    try:
        value = convert(document, defaulted=defaulted)
    except ProgramParseError as e:
        log.error(f"JSON data in '{path}' does not match the {what} structure: {e}")
        log.error(f"JSON data was: {json.dumps(document, indent=2)}")
        return LoadResult.parse_error(str(e))

    if defaulted:
        log.warning(f"Loaded {what} from '{path}', but with missing values that were defaulted: {', '.join(sorted(defaulted))}")
    else:
        log.info(f"Successfully loaded {what} from '{path}'.")
    return LoadResult.success(value)

def read_program_file(path):
    return _read_document(path, program_from_dict, "training program")

def read_list_file(path):
    return _read_document(path, list_from_dict, "training program list")

# Writes `document` as indented JSON. Goes through a temp file next to the target so a crash mid-write never leaves
# a half-written file behind.
def write_json(path, document):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    os.replace(tmp_path, path)

def write_program_file(program, path):
    write_json(path, program_to_dict(program))
    log.info(f"Saved training program '{program.id}' to '{path}'")

#endregion === Files ===
