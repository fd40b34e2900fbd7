"""Error types shared by the training program list and its persistence layer."""

from dataclasses import dataclass
from typing import Any, Literal


class TrainingProgramNotFound(LookupError):
    """An operation referenced a program id that isn't in the live collection.

    ``role`` names the parameter the id was passed as ("first program", ...)
    and only exists to make the message useful.
    """

    def __init__(self, program_id, role="program"):
        self.program_id = program_id
        self.role = role
        super().__init__(f"There is no training program with ID {program_id} (parameter {role})")


class InternalConsistencyFault(RuntimeError):
    """The order sequence and the program mapping have drifted apart.

    This is a bug, not bad input. Never catch it to carry on.
    """


class ProgramParseError(ValueError):
    """Data was valid JSON (or a dict) but didn't have the training program shape."""


@dataclass
class LoadResult:
    """Outcome of reading something from disk.

    ``kind`` is "ok", "io" (file missing/unreadable) or "parse" (bad JSON or
    bad structure). Callers check it instead of catching exceptions.
    """
    kind: Literal["ok", "io", "parse"]
    value: Any = None
    message: str = ""

    @property
    def ok(self):
        return self.kind == "ok"

    def __bool__(self):
        return self.ok

    @staticmethod
    def success(value):
        return LoadResult("ok", value)

    @staticmethod
    def io_error(message):
        return LoadResult("io", None, message)

    @staticmethod
    def parse_error(message):
        return LoadResult("parse", None, message)
