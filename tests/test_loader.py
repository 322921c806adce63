"""Tests for dataset record parsing and schema validation."""

import copy
import json

import pytest

from gto_trainer.config import EngineConfig
from gto_trainer.errors import DatasetError
from gto_trainer.solver.loader import (
    DEFAULT_DATA_PATH,
    read_records,
    solution_from_record,
    solutions_from_records,
)
from gto_trainer.utils.constants import ActionType, Position, Street

RECORD = {
    "id": "flop-ak7",
    "street": "flop",
    "hero_position": "BTN",
    "villain_position": "CO",
    "board": ["Ah", "Kd", "7s"],
    "stack_depth": 97.5,
    "pot_type": "srp",
    "street_actions": "x",
    "hand_class": "top-pair",
    "actions": [
        {"action": "check", "frequency": 0.55, "ev": 11.3},
        {"action": "bet", "size": 0.33, "frequency": 0.45, "ev": 12.1},
    ],
}


def _record(**overrides):
    record = copy.deepcopy(RECORD)
    record.update(overrides)
    return record


class TestSolutionFromRecord:
    def test_key_derivation(self):
        solution = solution_from_record(RECORD)
        assert solution.key.street == Street.FLOP
        assert solution.key.board_texture == "rainbow:A-K-7"
        assert solution.key.hero_position == Position.BTN
        assert solution.key.villain_position == Position.CO
        assert solution.key.stack_bucket == "100bb"
        assert solution.key.action_pattern == "srp:x"
        assert solution.solution_id == "flop-ak7"
        assert solution.hand_class == "top-pair"

    def test_actions_parsed(self):
        solution = solution_from_record(RECORD)
        assert [a.action for a in solution.actions] == [ActionType.CHECK, ActionType.BET]
        assert solution.actions[1].size == 0.33
        assert solution.actions[0].size is None

    def test_explicit_stack_bucket(self):
        record = _record(stack_bucket="50bb")
        del record["stack_depth"]
        assert solution_from_record(record).key.stack_bucket == "50bb"

    def test_empty_street_actions(self):
        assert solution_from_record(_record(street_actions="")).key.action_pattern == "srp:-"

    def test_custom_buckets(self):
        config = EngineConfig(stack_buckets=(40, 100))
        solution = solution_from_record(_record(stack_depth=45), config)
        assert solution.key.stack_bucket == "40bb"

    def test_frequencies_must_sum_to_one(self):
        record = _record()
        record["actions"][0]["frequency"] = 0.5
        with pytest.raises(DatasetError, match="sum"):
            solution_from_record(record)

    def test_frequency_outside_unit_interval(self):
        record = _record()
        record["actions"][0]["frequency"] = 1.2
        record["actions"][1]["frequency"] = -0.2
        with pytest.raises(DatasetError):
            solution_from_record(record)

    def test_non_finite_ev(self):
        record = _record()
        record["actions"][0]["ev"] = float("nan")
        with pytest.raises(DatasetError, match="EV"):
            solution_from_record(record)

    def test_bet_needs_size(self):
        record = _record()
        del record["actions"][1]["size"]
        with pytest.raises(DatasetError, match="size"):
            solution_from_record(record)

    def test_check_cannot_carry_size(self):
        record = _record()
        record["actions"][0]["size"] = 0.5
        with pytest.raises(DatasetError):
            solution_from_record(record)

    def test_duplicate_action(self):
        record = _record(actions=[
            {"action": "check", "frequency": 0.5, "ev": 1.0},
            {"action": "check", "frequency": 0.5, "ev": 1.0},
        ])
        with pytest.raises(DatasetError, match="duplicate"):
            solution_from_record(record)

    def test_no_actions(self):
        with pytest.raises(DatasetError):
            solution_from_record(_record(actions=[]))

    def test_missing_fields(self):
        record = _record()
        del record["street"]
        with pytest.raises(DatasetError, match="street"):
            solution_from_record(record)

    def test_unknown_action_type(self):
        record = _record()
        record["actions"][0]["action"] = "shove"
        with pytest.raises(DatasetError) as exc:
            solution_from_record(record)
        assert exc.value.record_id == "flop-ak7"

    def test_board_must_fit_street(self):
        with pytest.raises(DatasetError, match="board"):
            solution_from_record(_record(street="turn"))

    def test_bad_street_action_codes(self):
        with pytest.raises(DatasetError):
            solution_from_record(_record(street_actions="xz"))

    def test_stack_outside_every_bucket(self):
        with pytest.raises(DatasetError):
            solution_from_record(_record(stack_depth=400))

    def test_same_seat(self):
        with pytest.raises(DatasetError):
            solution_from_record(_record(villain_position="BTN"))

    def test_overbet_size_rejected(self):
        record = _record()
        record["actions"][1]["size"] = 4.0
        with pytest.raises(DatasetError, match="overbet"):
            solution_from_record(record)

    def test_overbet_cap_follows_config(self):
        record = _record()
        record["actions"][1]["size"] = 4.0
        solution = solution_from_record(record, EngineConfig(max_overbet=5.0))
        assert solution.actions[1].size == 4.0


class TestReadRecords:
    def test_list_file(self, tmp_path):
        path = tmp_path / "solutions.json"
        path.write_text(json.dumps([RECORD]))
        assert read_records(path) == [RECORD]

    def test_wrapped_file(self, tmp_path):
        path = tmp_path / "solutions.json"
        path.write_text(json.dumps({"solutions": [RECORD]}))
        assert len(read_records(path)) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "solutions.json"
        path.write_text("{not json")
        with pytest.raises(DatasetError):
            read_records(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(DatasetError):
            read_records(tmp_path / "missing.json")

    def test_bundled_dataset_is_valid(self):
        solutions = solutions_from_records(read_records(DEFAULT_DATA_PATH))
        assert len(solutions) >= 6
        for solution in solutions:
            assert abs(solution.frequency_total - 1.0) < 1e-6
