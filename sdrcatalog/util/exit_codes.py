"""Process exit statuses of the ``sdrcatalog`` command.

0 and 1 keep their usual meaning and 2 matches argparse's usage error.
3 and up describe catalog outcomes so scripts can branch on them.
"""

from __future__ import annotations

from typing import Dict


class ExitCode:
    SUCCESS: int = 0
    GENERAL_ERROR: int = 1  # operation rejected (duplicate entry, protected entry, bad TLE)
    INVALID_ARGS: int = 2
    NOT_FOUND: int = 3
    INIT_FAILED: int = 4  # registry or one of its subsystems could not start
    STORE_ERROR: int = 5  # SQLite user store unreadable or unwritable

    _TEXT: Dict[int, str] = {
        0: "ok",
        1: "rejected",
        2: "usage error",
        3: "no such entry",
        4: "initialization failed",
        5: "config store error",
    }

    @classmethod
    def message(cls, code: int) -> str:
        return cls._TEXT.get(code, f"exit status {code}")
