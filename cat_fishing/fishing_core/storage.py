"""
High-Score Storage
==================

Persists the single best score between sessions.

Two stores are provided: an in-memory one for tests and headless runs, and a
JSON file store that keeps scores under a string key so several games can
share one file.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_KEY = "catFishing_highScore"


class HighScoreStore:
    """Interface for high-score persistence."""

    def __init__(self, key: str = DEFAULT_KEY):
        self.key = key

    def load(self) -> int:
        raise NotImplementedError

    def save(self, score: int) -> None:
        raise NotImplementedError

    def submit(self, score: int) -> bool:
        """Save score if it beats the stored one. Returns True if it did."""
        if score > self.load():
            self.save(score)
            return True
        return False


class MemoryHighScoreStore(HighScoreStore):
    """Keeps the high score in process memory."""

    def __init__(self, key: str = DEFAULT_KEY, initial: int = 0):
        super().__init__(key)
        self._scores: Dict[str, int] = {key: max(0, int(initial))}

    def load(self) -> int:
        return self._scores.get(self.key, 0)

    def save(self, score: int) -> None:
        self._scores[self.key] = max(0, int(score))


class JsonHighScoreStore(HighScoreStore):
    """
    Stores high scores in a JSON object on disk.

    A missing or unreadable file counts as no high score; the file is
    rewritten on the next save.
    """

    def __init__(self, path: Union[str, Path], key: str = DEFAULT_KEY):
        super().__init__(key)
        self.path = Path(path)

    def _read_all(self) -> Dict[str, int]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read high scores from %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed high score file %s", self.path)
            return {}
        return data

    def load(self) -> int:
        value = self._read_all().get(self.key, 0)
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            logger.warning("Ignoring non-integer high score %r under %s", value, self.key)
            return 0

    def save(self, score: int) -> None:
        data = self._read_all()
        data[self.key] = max(0, int(score))
        if self.path.parent and not self.path.parent.exists():
            os.makedirs(self.path.parent, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
        logger.debug("Saved high score %d to %s", score, self.path)


def open_store(path: Optional[Union[str, Path]] = None, key: str = DEFAULT_KEY) -> HighScoreStore:
    """JSON store at path, or an in-memory store when path is None."""
    if path is None:
        return MemoryHighScoreStore(key)
    return JsonHighScoreStore(path, key)
