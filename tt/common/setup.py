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

# Dataclass for accessing paths across the engine. Nothing here is created on build, only when something
# actually gets written there.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path

    logs: Path
    current: Path
    snapshots: Path

    @staticmethod
    def build():
        # TASKTIMER_HOME wins, otherwise everything lives under the user's home folder
        home = os.getenv("TASKTIMER_HOME")
        data = Path(home) if home else Path.home() / ".tasktimer"

        return ProjectPaths(
            data = data,
            logs = data / "logs",
            current = data / "current",
            snapshots = data / "snapshots",
        )
PATHS = ProjectPaths.build()
