"""State management for cleanup history.

This module provides the StateManager class for persisting and querying
cleanup run history in a JSONL file format.
"""

import json
import logging
from pathlib import Path

from reclaimctl.core.paths import ensure_state_dir, get_state_dir
from reclaimctl.models.cleanup import CleanupResult
from reclaimctl.models.history import HistoryEntry, create_history_entry

logger = logging.getLogger(__name__)


class StateManager:
    """Manages history state in JSONL file.

    Storage location: ~/.local/state/reclaimctl/history.jsonl

    The history file uses JSON Lines format where each line is a complete
    JSON object representing a HistoryEntry. This format allows for
    efficient append-only writes and easy parsing.
    """

    HISTORY_FILENAME = "history.jsonl"

    def __init__(self, state_dir: Path | None = None) -> None:
        """Initialize StateManager.

        Args:
            state_dir: Optional override for state directory.
                      Default: ~/.local/state/reclaimctl
        """
        self._state_dir = state_dir if state_dir is not None else get_state_dir()

    @property
    def history_path(self) -> Path:
        """Path to history.jsonl file."""
        return self._state_dir / self.HISTORY_FILENAME

    def record_run(self, entry: HistoryEntry) -> None:
        """Append a cleanup run to the history file.

        Creates file and parent directories if they don't exist.

        Args:
            entry: The history entry to record.

        Raises:
            RuntimeError: If the state directory cannot be created.
            OSError: If the file cannot be written.
        """
        if self._state_dir == get_state_dir():
            ensure_state_dir()
        else:
            self._state_dir.mkdir(parents=True, exist_ok=True)

        line = entry.to_json_line()

        with self.history_path.open(mode="a", encoding="utf-8") as f:
            f.write(line + "\n")
            f.flush()

    def get_history(self, limit: int | None = None) -> list[HistoryEntry]:
        """Read history entries, newest first.

        Corrupt lines are skipped with a warning.

        Args:
            limit: Maximum number of entries to return.
                  If None, returns all entries.

        Returns:
            List of HistoryEntry, newest first.
            Returns empty list if file doesn't exist.
        """
        if not self.history_path.exists():
            return []

        entries: list[HistoryEntry] = []

        with self.history_path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    entries.append(HistoryEntry.from_json_line(line))
                except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
                    logger.warning(
                        "Skipping corrupt history line %d: %s",
                        line_num,
                        str(e),
                    )
                    continue

        entries.reverse()

        if limit is not None:
            return entries[:limit]

        return entries

    def get_entry_by_id(self, entry_id: str) -> HistoryEntry | None:
        """Find entry by ID.

        Args:
            entry_id: The entry ID to find.

        Returns:
            HistoryEntry if found, None otherwise.
        """
        for entry in self.get_history():
            if entry.id == entry_id:
                return entry
        return None


def record_cleanup_run(
    result: CleanupResult,
    *,
    dry_run: bool = False,
    command: str = "reclaimctl clean",
    state_dir: Path | None = None,
) -> HistoryEntry | None:
    """Record a cleanup run to history.

    Errors during history recording are logged but do **not** interrupt
    the calling command's flow.

    Args:
        result: Result of the cleanup run.
        dry_run: Whether the run only simulated commands.
        command: Command string stored in the history entry metadata.
        state_dir: Optional override for the state directory.

    Returns:
        The recorded entry, or None if recording failed.
    """
    try:
        entry = create_history_entry(result, dry_run=dry_run, metadata={"command": command})
        StateManager(state_dir).record_run(entry)
    except (OSError, RuntimeError) as e:
        logger.warning("Failed to record cleanup run to history: %s", str(e))
        return None

    logger.debug(
        "Recorded cleanup run with %d completed item(s) to history",
        entry.completed_count,
    )
    return entry
