import os
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories if missing, and optionally error out when a path
# doesn't exist.
def ensure_directory(path: Path,must_exist=False):
    if must_exist:
        if not path.exists():
            raise FileNotFoundError(f"Required directory is missing: {path}")
        if not path.is_dir():
            raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    else:
        path.mkdir(parents=True,exist_ok=True)
    return path

# Picks the root folder for all user data. RLTT_HOME wins (used for portable installs and tests), then
# APPDATA on Windows, then a dotfolder in the home directory everywhere else.
def _resolve_data_root():
    override = os.getenv("RLTT_HOME")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "RLTrainingTimer"
    return Path.home() / ".rltrainingtimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path
    current: Path
    backups: Path

    @staticmethod
    def build(data_root: Path | None = None):
        data = ensure_directory(data_root or _resolve_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")
        backups = ensure_directory(data / "backups")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
            backups = backups
        )
PATHS = ProjectPaths.build()
