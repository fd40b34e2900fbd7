"""Persistence for the training program list.

``TrainingProgramRepository`` is the boundary the list controller talks to;
``JsonFileRepository`` is the one the application actually uses.
"""

import time
from pathlib import Path
from rtt.common.logger import log
from rtt.core import config
from rtt.core.backup import create_backup, prune_backups
from rtt.core.errors import LoadResult
from rtt.core.model import TrainingProgramListData
from rtt.core.serialization import list_to_dict, read_list_file, write_json


class TrainingProgramRepository:
    """Stores and restores full list snapshots.

    ``path`` is optional on both calls; leaving it out means the
    repository's own default location.
    """

    def store(self, data, path=None):
        raise NotImplementedError

    # Must return a LoadResult wrapping a TrainingProgramListData.
    def restore(self, path=None):
        raise NotImplementedError


class JsonFileRepository(TrainingProgramRepository):

    # backup_min_minutes=None turns backups off entirely.
    def __init__(self, default_path=None, backup_dir=None, backup_min_minutes=5):
        self.default_path = Path(default_path or config.PROGRAM_LIST_PATH)
        self.backup_dir = Path(backup_dir) if backup_dir else None
        self.backup_min_minutes = backup_min_minutes
        self._last_backup_time = None

    # Writes the snapshot to `path`, or the default file when no path is given. OSErrors go straight to the caller.
    def store(self, data, path=None):
        target = Path(path) if path else self.default_path
        document = list_to_dict(data)
        write_json(target, document)
        log.info(f"Saved {len(data)} training programs to '{target}'")

        if not path:
            self._try_backup(document)

    def restore(self, path=None):
        if not path:
            # Nothing saved yet is a normal first run, not an error.
            if not self.default_path.exists():
                log.info(f"No saved training program list at '{self.default_path}', starting with an empty list.")
                return LoadResult.success(TrainingProgramListData())
            return read_list_file(self.default_path)
        return read_list_file(path)

    # Backs up the default file at most once every backup_min_minutes, then prunes old backups.
    def _try_backup(self, document):
        if self.backup_dir is None or self.backup_min_minutes is None:
            return None
        now = time.monotonic()
        if self._last_backup_time is not None and now - self._last_backup_time < self.backup_min_minutes * 60:
            return None
        backup_path = create_backup(document, self.backup_dir, reason="list_store")
        self._last_backup_time = now
        prune_backups(self.backup_dir)
        return backup_path
