"""Tests for hand scoring and review."""

import pytest

from gto_trainer.config import EngineConfig
from gto_trainer.core.evaluator import Decision, classify
from gto_trainer.core.game_state import ActionRecord, new_hand
from gto_trainer.core.scoring import (
    TIER_FEEDBACK,
    ScoreTier,
    build_review,
    calculate_score,
    decision_loss,
    score_tier,
)
from gto_trainer.solver.data_structures import GTOAction
from gto_trainer.utils.constants import ActionType, Position, Street

BEST = GTOAction(ActionType.BET, 0.45, 12.1, 0.33)


def _decision(frequency, ev=12.1, blunder=False):
    return Decision(
        street=Street.FLOP,
        chosen_action=ActionRecord(Street.FLOP, ActionType.CHECK, Position.BTN),
        chosen_frequency=frequency,
        chosen_ev=ev,
        best_action=BEST,
        best_frequency=BEST.frequency,
        best_ev=BEST.ev,
        is_blunder=blunder,
        verdict=classify(frequency, blunder),
    )


class TestCalculateScore:
    def test_empty_hand(self):
        assert calculate_score([]) == 100

    def test_blunder_and_near_optimal(self):
        decisions = [_decision(0.0, ev=9.1, blunder=True), _decision(0.9)]
        assert calculate_score(decisions) == 68

    def test_all_pure_best(self):
        assert calculate_score([_decision(1.0), _decision(1.0)]) == 100

    def test_clamped_at_zero(self):
        config = EngineConfig(blunder_penalty=10.0)
        assert calculate_score([_decision(0.0, blunder=True)], config) == 0

    def test_score_is_int(self):
        assert isinstance(calculate_score([_decision(0.55)]), int)

    def test_loss(self):
        assert decision_loss(_decision(0.0, blunder=True)) == 3.0
        assert decision_loss(_decision(0.55)) == pytest.approx(0.675)


class TestTiers:
    @pytest.mark.parametrize("score,tier", [
        (100, ScoreTier.EXCELLENT),
        (90, ScoreTier.EXCELLENT),
        (89, ScoreTier.GOOD),
        (75, ScoreTier.GOOD),
        (74, ScoreTier.DECENT),
        (60, ScoreTier.DECENT),
        (59, ScoreTier.NEEDS_WORK),
        (0, ScoreTier.NEEDS_WORK),
    ])
    def test_thresholds(self, score, tier):
        assert score_tier(score) == tier

    def test_every_tier_has_feedback(self):
        assert set(TIER_FEEDBACK) == set(ScoreTier)


class TestBuildReview:
    def test_review(self):
        state = new_hand(
            Position.BTN, Position.CO, "As Qs",
            street=Street.RIVER, board="Ah Kd 7s 3c 9h", pot=20.0,
        )
        decisions = [_decision(0.0, ev=9.1, blunder=True), _decision(0.9)]
        review = build_review(decisions, state, unevaluated=1)
        assert review.score == 68
        assert review.tier == ScoreTier.DECENT
        assert review.blunders == 1
        assert review.good_decisions == 1
        assert review.marginal_decisions == 0
        assert review.unevaluated == 1
        assert review.pot == 20.0
        assert len(review.board) == 5
        assert review.total_ev_loss == pytest.approx(3.0)
        assert review.feedback == TIER_FEEDBACK[ScoreTier.DECENT]

    def test_rare_lines_are_marginal_not_good(self):
        state = new_hand(Position.BTN, Position.CO, "As Qs")
        decisions = [_decision(0.55), _decision(0.1), _decision(0.0), _decision(0.0, blunder=True)]
        review = build_review(decisions, state)
        assert review.good_decisions == 1
        assert review.marginal_decisions == 2
        assert review.blunders == 1
