"""
JSONL utilities for reading and writing analytics logs.

Provides locked JSONL reading/writing with error handling.
"""

import json
import sys
from pathlib import Path
from typing import List, Callable, Optional
import fcntl


class JSONLReader:
    """Read and filter JSONL logs with error handling."""

    @staticmethod
    def read_log(
        path: Path,
        filter_fn: Optional[Callable[[dict], bool]] = None
    ) -> List[dict]:
        """
        Read JSONL with optional filtering.

        Args:
            path: Path to JSONL file
            filter_fn: Optional filter function (entry) -> bool

        Returns:
            List of dict entries
        """
        path = Path(path)
        if not path.exists():
            return []

        entries = []
        with open(path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError as e:
                    # Log but continue
                    print(f"Warning: Malformed JSON at {path}:{line_num}: {e}",
                          file=sys.stderr)
                    continue

                if filter_fn and not filter_fn(entry):
                    continue

                entries.append(entry)

        return entries


class JSONLWriter:
    """JSONL writer with exclusive file locking."""

    def __init__(self, path: Path):
        """
        Initialize writer.

        Args:
            path: Path to JSONL file
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, data: dict):
        """
        Atomically append entry to JSONL file.

        Args:
            data: Dictionary to append as JSON line
        """
        self.append_batch([data])

    def append_batch(self, data_list: List[dict]):
        """
        Atomically append multiple entries.

        The whole batch is serialized before the file is touched, so a
        value that cannot be encoded leaves the file unchanged.

        Args:
            data_list: List of dictionaries to append
        """
        if not data_list:
            return

        lines = "".join(
            json.dumps(data, ensure_ascii=False, default=str) + '\n'
            for data in data_list
        )

        with open(self.path, 'a') as f:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                f.write(lines)
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
