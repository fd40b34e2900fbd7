"""Training program data objects: entries, programs and list snapshots.

Pure data, no persistence or notification. Durations are whole milliseconds
everywhere, which is also how they're written to disk.
"""

import copy
from dataclasses import dataclass, field
from enum import IntEnum

DEFAULT_PROGRAM_NAME = "New Training Program"


class EntryType(IntEnum):
    TIMER = 0
    TRAINING_PACK = 1
    WORKSHOP_MAP = 2


@dataclass
class Entry:
    """One timed step of a program.

    ``training_pack_code`` only matters for TRAINING_PACK entries and
    ``workshop_map_path`` only for WORKSHOP_MAP entries; both are kept as
    empty strings otherwise so the document shape never changes.
    """
    name: str = ""
    duration: int = 0
    type: EntryType = EntryType.TIMER
    training_pack_code: str = ""
    workshop_map_path: str = ""

    def __post_init__(self):
        if self.duration < 0:
            raise ValueError(f"Entry duration can't be negative (got {self.duration})")
        self.type = EntryType(self.type)


@dataclass
class ProgramRecord:
    """A named, ordered list of entries.

    ``duration`` is stored on its own and is not recomputed from the entries,
    see ``entries_duration`` for the sum. ``id`` is assigned once by whoever
    creates the record and the list controller never changes it.
    """
    id: str
    name: str = DEFAULT_PROGRAM_NAME
    duration: int = 0
    entries: list[Entry] = field(default_factory=list)
    read_only: bool = False

    @property
    def entries_duration(self):
        return sum(entry.duration for entry in self.entries)

    def copy(self):
        return copy.deepcopy(self)


# Point-in-time copy of the whole list. `order` is the display order, `programs` holds the content for every id in
# it (and nothing else).
@dataclass(frozen=True)
class TrainingProgramListData:
    order: tuple[str, ...] = ()
    programs: dict[str, ProgramRecord] = field(default_factory=dict)
    workshop_folder_location: str = ""

    # Programs in display order.
    def ordered_programs(self):
        return [self.programs[program_id] for program_id in self.order]

    def __len__(self):
        return len(self.order)
