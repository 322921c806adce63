"""SQLite-backed store for the GTO solution dataset.

Holds solver exports in a local database so large datasets need not be
re-parsed from JSON on every start. Rows are turned back into loader
records, so the same schema validation applies whichever source is used.

Schema:
    solutions(id, street, hero_position, villain_position, board,
              stack_depth, stack_bucket, pot_type, street_actions,
              hand_class, description, range_metadata)
    solution_actions(solution_id, ordinal, action, size, frequency, ev)

Usage:
    db = SolutionDB(tmp_path / "solutions.db")
    db.insert_records(read_records("solutions.json"))
    repo = SolutionRepository.from_db(db)
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from gto_trainer.errors import DatasetError

_DEFAULT_DB_PATH = Path(__file__).parent / "data" / "solutions.db"

_CREATE_SOLUTIONS = """\
CREATE TABLE IF NOT EXISTS solutions (
    id               TEXT PRIMARY KEY,
    street           TEXT NOT NULL,
    hero_position    TEXT NOT NULL,
    villain_position TEXT NOT NULL,
    board            TEXT NOT NULL DEFAULT '',
    stack_depth      REAL,
    stack_bucket     TEXT,
    pot_type         TEXT NOT NULL DEFAULT 'srp',
    street_actions   TEXT NOT NULL DEFAULT '',
    hand_class       TEXT,
    description      TEXT NOT NULL DEFAULT '',
    range_metadata   TEXT NOT NULL DEFAULT '{}'
);
"""

_CREATE_ACTIONS = """\
CREATE TABLE IF NOT EXISTS solution_actions (
    solution_id TEXT NOT NULL REFERENCES solutions(id) ON DELETE CASCADE,
    ordinal     INTEGER NOT NULL,
    action      TEXT NOT NULL,
    size        REAL,
    frequency   REAL NOT NULL,
    ev          REAL NOT NULL DEFAULT 0.0,
    PRIMARY KEY (solution_id, ordinal)
);
"""

_CREATE_INDEX = """\
CREATE INDEX IF NOT EXISTS idx_spot
    ON solutions(street, hero_position, villain_position, pot_type);
"""

_INSERT_SOLUTION = """\
INSERT OR REPLACE INTO solutions
    (id, street, hero_position, villain_position, board, stack_depth,
     stack_bucket, pot_type, street_actions, hand_class, description, range_metadata)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_ACTION = """\
INSERT INTO solution_actions (solution_id, ordinal, action, size, frequency, ev)
VALUES (?, ?, ?, ?, ?, ?);
"""

_SELECT_SOLUTIONS = """\
SELECT id, street, hero_position, villain_position, board, stack_depth,
       stack_bucket, pot_type, street_actions, hand_class, description, range_metadata
FROM solutions
ORDER BY id;
"""

_SELECT_ACTIONS = """\
SELECT action, size, frequency, ev
FROM solution_actions
WHERE solution_id = ?
ORDER BY ordinal;
"""


class SolutionDB:
    """Connection to the solution dataset SQLite database."""

    def __init__(self, db_path: Path | str | None = None) -> None:
        self._path = Path(db_path) if db_path else _DEFAULT_DB_PATH
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._path))
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._conn.execute(_CREATE_SOLUTIONS)
        self._conn.execute(_CREATE_ACTIONS)
        self._conn.execute(_CREATE_INDEX)
        self._conn.commit()

    @property
    def path(self) -> Path:
        return self._path

    def insert_record(self, record: Mapping[str, Any]) -> None:
        """Insert or replace one solution record (not committed)."""
        record_id = record.get("id")
        if not record_id:
            raise DatasetError(None, "records stored in the database need an id")
        board = record.get("board", [])
        if not isinstance(board, str):
            board = " ".join(str(c) for c in board)
        try:
            self._conn.execute(
                _INSERT_SOLUTION,
                (
                    record_id,
                    record["street"],
                    record["hero_position"],
                    record["villain_position"],
                    board,
                    record.get("stack_depth"),
                    record.get("stack_bucket"),
                    record.get("pot_type", "srp"),
                    record.get("street_actions", ""),
                    record.get("hand_class"),
                    record.get("description", ""),
                    json.dumps(dict(record.get("range_metadata") or {})),
                ),
            )
            self._conn.execute(
                "DELETE FROM solution_actions WHERE solution_id = ?", (record_id,),
            )
            self._conn.executemany(
                _INSERT_ACTION,
                [
                    (record_id, i, a["action"], a.get("size"), a["frequency"], a.get("ev", 0.0))
                    for i, a in enumerate(record["actions"])
                ],
            )
        except KeyError as e:
            raise DatasetError(str(record_id), f"missing field {e.args[0]!r}") from e

    def insert_records(self, records: Iterable[Mapping[str, Any]]) -> None:
        """Batch insert records in a single transaction."""
        with self._conn:
            for record in records:
                self.insert_record(record)

    def iter_records(self) -> Iterator[dict[str, Any]]:
        """Yield stored solutions as loader records."""
        rows = self._conn.execute(_SELECT_SOLUTIONS).fetchall()
        for row in rows:
            actions = []
            for action, size, frequency, ev in self._conn.execute(_SELECT_ACTIONS, (row[0],)):
                entry: dict[str, Any] = {"action": action, "frequency": frequency, "ev": ev}
                if size is not None:
                    entry["size"] = size
                actions.append(entry)
            record: dict[str, Any] = {
                "id": row[0],
                "street": row[1],
                "hero_position": row[2],
                "villain_position": row[3],
                "board": row[4].split(),
                "pot_type": row[7],
                "street_actions": row[8],
                "description": row[10],
                "range_metadata": json.loads(row[11]),
                "actions": actions,
            }
            if row[5] is not None:
                record["stack_depth"] = row[5]
            if row[6] is not None:
                record["stack_bucket"] = row[6]
            if row[9] is not None:
                record["hand_class"] = row[9]
            yield record

    def row_count(self) -> int:
        """Total number of stored solutions."""
        return self._conn.execute("SELECT COUNT(*) FROM solutions").fetchone()[0]

    def list_spots(self) -> list[tuple[str, str, str, int]]:
        """List (street, hero_position, villain_position, num_solutions)."""
        rows = self._conn.execute(
            "SELECT street, hero_position, villain_position, COUNT(*) "
            "FROM solutions "
            "GROUP BY street, hero_position, villain_position "
            "ORDER BY street, hero_position, villain_position"
        ).fetchall()
        return [(r[0], r[1], r[2], r[3]) for r in rows]

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None  # type: ignore[assignment]
