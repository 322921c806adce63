"""Dataset loading and schema validation for GTO solution records.

Record format (one per scenario):
    {
        "id": "flop-btn-vs-co-ahigh",
        "street": "flop",
        "hero_position": "BTN",
        "villain_position": "CO",
        "board": ["Ah", "Kd", "7s"],
        "stack_depth": 100,            # or "stack_bucket": "100bb"
        "pot_type": "srp",
        "street_actions": "x",         # current-street events before hero acts
        "actions": [
            {"action": "check", "frequency": 0.55, "ev": 11.3},
            {"action": "bet", "size": 0.33, "frequency": 0.45, "ev": 12.1}
        ],
        "hand_class": "top-pair",      # optional
        "description": "...",          # optional
        "range_metadata": {...}        # optional
    }

The board is a concrete representative of its texture class; the loader
derives the scenario key with the same canonicalization the matcher uses
on live hands. Violations raise DatasetError so bad data is rejected at
load time rather than discovered during lookup.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from gto_trainer.config import DEFAULT_CONFIG, EngineConfig
from gto_trainer.errors import DatasetError, InvalidHand, NoBucketAvailable
from gto_trainer.solver.board_bucketing import board_signature, nearest_stack_bucket
from gto_trainer.solver.data_structures import GTOAction, GTOSolution, ScenarioKey
from gto_trainer.utils.card import Board
from gto_trainer.utils.constants import (
    ACTION_CODES,
    BOARD_SIZES,
    ActionType,
    Position,
    PotType,
    Street,
)

DEFAULT_DATA_PATH = Path(__file__).parent / "data" / "solutions.json"

_REQUIRED = ("street", "hero_position", "villain_position", "actions")
_EVENT_CODES = frozenset(ACTION_CODES.values())


def validate_solution(
    solution: GTOSolution,
    tolerance: float = 1e-6,
    max_size: float = DEFAULT_CONFIG.max_overbet,
) -> None:
    """Check a solution's action distribution.

    Raises:
        DatasetError: On empty, malformed or non-normalized action sets.
    """
    sid = solution.solution_id or str(solution.key)
    if not solution.actions:
        raise DatasetError(sid, "solution offers no actions")

    seen: set[tuple[ActionType, float | None]] = set()
    for a in solution.actions:
        if not math.isfinite(a.frequency) or not 0.0 <= a.frequency <= 1.0:
            raise DatasetError(sid, f"{a.label} frequency {a.frequency} outside [0, 1]")
        if not math.isfinite(a.ev):
            raise DatasetError(sid, f"{a.label} has non-finite EV")
        if a.is_sized:
            if a.size is None or not math.isfinite(a.size) or a.size <= 0:
                raise DatasetError(sid, f"{a.action.value} needs a positive size")
            if a.size > max_size:
                raise DatasetError(
                    sid, f"{a.label} exceeds the {max_size:g}x pot overbet cap",
                )
        elif a.size is not None:
            raise DatasetError(sid, f"{a.action.value} cannot carry a size")
        ident = (a.action, a.size)
        if ident in seen:
            raise DatasetError(sid, f"duplicate action {a.label}")
        seen.add(ident)

    total = solution.frequency_total
    if abs(total - 1.0) > tolerance:
        raise DatasetError(sid, f"frequencies sum to {total:.6f}, expected 1.0")


def _parse_action(record_id: str, raw: Any) -> GTOAction:
    if not isinstance(raw, Mapping):
        raise DatasetError(record_id, f"action entry must be an object, got {raw!r}")
    try:
        size = raw.get("size")
        return GTOAction(
            action=ActionType(raw["action"]),
            frequency=float(raw["frequency"]),
            ev=float(raw["ev"]),
            size=float(size) if size is not None else None,
        )
    except KeyError as e:
        raise DatasetError(record_id, f"action entry missing {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise DatasetError(record_id, f"bad action entry {dict(raw)!r}: {e}") from e


def _stack_bucket(record_id: str, record: Mapping[str, Any], config: EngineConfig) -> str:
    if record.get("stack_bucket"):
        return str(record["stack_bucket"])
    if record.get("stack_depth") is None:
        raise DatasetError(record_id, "needs stack_depth or stack_bucket")
    try:
        return nearest_stack_bucket(
            float(record["stack_depth"]), config.stack_buckets, config.bucket_tolerance,
        )
    except NoBucketAvailable as e:
        raise DatasetError(record_id, str(e)) from e
    except (TypeError, ValueError) as e:
        raise DatasetError(record_id, f"bad stack_depth: {e}") from e


def solution_from_record(
    record: Mapping[str, Any],
    config: EngineConfig = DEFAULT_CONFIG,
) -> GTOSolution:
    """Build and validate a GTOSolution from one dataset record.

    Raises:
        DatasetError: If the record violates the schema.
    """
    record_id = str(record.get("id", "")) or None
    missing = [k for k in _REQUIRED if k not in record]
    if missing:
        raise DatasetError(record_id, f"missing fields: {', '.join(missing)}")

    try:
        street = Street(record["street"])
        hero = Position(record["hero_position"])
        villain = Position(record["villain_position"])
        pot_type = PotType(record.get("pot_type", PotType.SINGLE_RAISED))
        board = Board.from_str(record.get("board", ()))
    except (InvalidHand, TypeError, ValueError) as e:
        raise DatasetError(record_id, str(e)) from e

    if hero == villain:
        raise DatasetError(record_id, "hero and villain share a seat")
    if len(board) != BOARD_SIZES[street]:
        raise DatasetError(
            record_id, f"{street.value} needs {BOARD_SIZES[street]} board cards, got {len(board)}",
        )

    events = str(record.get("street_actions", "")).replace("-", "")
    if set(events) - _EVENT_CODES:
        raise DatasetError(record_id, f"unknown street_actions codes in {events!r}")

    raw_actions = record["actions"]
    if not isinstance(raw_actions, list):
        raise DatasetError(record_id, "actions must be a list")

    key = ScenarioKey(
        street=street,
        board_texture=board_signature(board.cards),
        hero_position=hero,
        villain_position=villain,
        stack_bucket=_stack_bucket(record_id, record, config),
        action_pattern=f"{pot_type.value}:{events or '-'}",
    )
    metadata = record.get("range_metadata") or {}
    if not isinstance(metadata, Mapping):
        raise DatasetError(record_id, "range_metadata must be an object")

    solution = GTOSolution(
        key=key,
        actions=tuple(_parse_action(record_id, a) for a in raw_actions),
        solution_id=record_id or "",
        description=str(record.get("description", "")),
        hand_class=record.get("hand_class"),
        range_metadata=metadata,
    )
    validate_solution(solution, config.frequency_tolerance, config.max_overbet)
    return solution


def solutions_from_records(
    records: Iterable[Mapping[str, Any]],
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[GTOSolution]:
    return [solution_from_record(r, config) for r in records]


def read_records(path: Path | str) -> list[dict[str, Any]]:
    """Read raw records from a JSON file.

    Accepts a top-level list or an object with a "solutions" list.

    Raises:
        DatasetError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise DatasetError(None, f"cannot read {path}: {e}") from e

    if isinstance(data, Mapping):
        data = data.get("solutions")
    if not isinstance(data, list):
        raise DatasetError(None, f"{path} must hold a list of solution records")
    return data
