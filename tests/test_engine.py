"""End-to-end tests for DecisionEngine and HandSession."""

import logging

import numpy as np
import pytest

from gto_trainer.config import EngineConfig
from gto_trainer.core.engine import DecisionEngine, HandSession
from gto_trainer.core.game_state import new_hand
from gto_trainer.core.scoring import ScoreTier
from gto_trainer.errors import InvalidAction, SolutionNotFound
from gto_trainer.solver.repository import SolutionRepository
from gto_trainer.strategy.opponent import PassiveOpponent, SolutionSampledOpponent
from gto_trainer.utils.constants import ActionType, HandStatus, Position, Street


def _hand(board="Ah Kd 7s", runout="3c 9h"):
    return new_hand(
        Position.BTN, Position.CO, "As Qs",
        street=Street.FLOP, board=board, pot=7.5,
        hero_stack=97.5, villain_stack=100.0, runout=runout,
    )


@pytest.fixture(scope="module")
def engine():
    return DecisionEngine(SolutionRepository.default())


# ---------------------------------------------------------------------------
# DecisionEngine.process
# ---------------------------------------------------------------------------

class TestProcess:
    def test_villain_action_not_evaluated(self, engine):
        state = _hand()
        outcome = engine.process(state, state.record(ActionType.CHECK))
        assert outcome.decision is None
        assert outcome.error is None
        assert outcome.state.hero_to_act

    def test_hero_action_evaluated_against_pre_action_state(self, engine):
        state = _hand()
        state = engine.process(state, state.record(ActionType.CHECK)).state
        outcome = engine.process(state, state.record(ActionType.BET, 0.33))
        assert outcome.feedback_available
        decision = outcome.decision
        assert decision.scenario_key.action_pattern == "srp:x"
        assert decision.chosen_frequency == 0.35
        assert decision.best_action.label == "bet 33%"
        assert outcome.state.street == Street.TURN

    def test_invalid_action_propagates(self, engine):
        state = _hand()
        with pytest.raises(InvalidAction):
            engine.process(state, state.record(ActionType.CALL))

    def test_unmatched_spot_has_no_feedback(self, engine, caplog):
        state = _hand(board="9c 5d 2h")
        state = engine.process(state, state.record(ActionType.CHECK)).state
        with caplog.at_level(logging.WARNING, logger="gto_trainer.engine"):
            outcome = engine.process(state, state.record(ActionType.CHECK))
        assert not outcome.feedback_available
        assert isinstance(outcome.error, SolutionNotFound)
        assert outcome.state.street == Street.TURN
        assert "No feedback" in caplog.text

    def test_default_repository(self):
        assert len(DecisionEngine().matcher.repository) >= 6


# ---------------------------------------------------------------------------
# HandSession
# ---------------------------------------------------------------------------

class TestHandSession:
    def test_full_hand_to_river(self, engine):
        session = HandSession(engine, _hand(), PassiveOpponent())
        assert session.state.hero_to_act

        flop = session.act(ActionType.BET, 0.33)
        assert flop.decision.scenario_key.street == Street.FLOP
        assert session.state.street == Street.TURN
        assert session.state.hero_to_act

        turn = session.act(ActionType.CHECK)
        assert turn.decision.chosen_frequency == 0.70
        assert session.state.street == Street.RIVER

        river = session.act(ActionType.CHECK)
        assert river.decision.chosen_frequency == 0.80
        assert session.is_complete
        assert session.state.status == HandStatus.COMPLETE

        review = session.review()
        assert len(review.decisions) == 3
        assert review.blunders == 0
        assert review.unevaluated == 0
        assert review.tier == ScoreTier.GOOD
        assert len(review.board) == 5

    def test_fold_ends_hand(self, engine):
        session = HandSession(engine, _hand())
        session.villain_act(ActionType.BET, 0.5)
        outcome = session.act(ActionType.FOLD)
        assert outcome.decision.is_blunder
        assert outcome.decision.chosen_frequency == 0.0
        assert session.state.status == HandStatus.FOLDED
        review = session.review()
        assert review.score == 40
        assert review.tier == ScoreTier.NEEDS_WORK
        assert len(review.board) == 3

    def test_review_before_complete(self, engine):
        session = HandSession(engine, _hand(), PassiveOpponent())
        with pytest.raises(ValueError):
            session.review()

    def test_hero_cannot_act_out_of_turn(self, engine):
        session = HandSession(engine, _hand())
        with pytest.raises(InvalidAction):
            session.act(ActionType.CHECK)
        assert session.decisions == ()

    def test_villain_cannot_act_on_hero_turn(self, engine):
        session = HandSession(engine, _hand(), PassiveOpponent())
        with pytest.raises(InvalidAction):
            session.villain_act(ActionType.CHECK)

    def test_illegal_hero_action_leaves_session_unchanged(self, engine):
        session = HandSession(engine, _hand(), PassiveOpponent())
        before = session.state
        with pytest.raises(InvalidAction):
            session.act(ActionType.CALL)
        assert session.state is before

    def test_unmatched_decisions_counted(self, engine):
        session = HandSession(engine, _hand(board="9c 5d 2h", runout="3s 4h"), PassiveOpponent())
        while not session.is_complete:
            outcome = session.act(ActionType.CHECK)
            assert outcome.error is not None
        review = session.review()
        assert review.decisions == ()
        assert review.unevaluated == 3
        assert review.score == 100

    def test_sampled_opponent_hand_completes(self, engine):
        opponent = SolutionSampledOpponent(engine.matcher, rng=np.random.default_rng(11))
        session = HandSession(engine, _hand(), opponent)
        while not session.is_complete:
            legal = session.state.legal_actions()
            action = ActionType.CALL if ActionType.CALL in legal else ActionType.CHECK
            session.act(action)
        review = session.review()
        assert 0 <= review.score <= 100
        assert len(review.decisions) + review.unevaluated == 3


# ---------------------------------------------------------------------------
# Opponent edge cases
# ---------------------------------------------------------------------------

def _villain_bets(street, board):
    return {
        "id": f"co-bets-{street}",
        "street": street,
        "hero_position": "CO",
        "villain_position": "BTN",
        "board": board,
        "stack_bucket": "30bb",
        "street_actions": "",
        "actions": [{"action": "bet", "size": 0.5, "frequency": 1.0, "ev": 1.0}],
    }


class TestOpponentEdgeCases:
    def test_all_in_villain_does_not_stall_session(self):
        repo = SolutionRepository.from_records([
            _villain_bets("flop", ["Ah", "Kd", "7s"]),
            _villain_bets("turn", ["Ah", "Kd", "7s", "3c"]),
        ])
        engine = DecisionEngine(repo)
        opponent = SolutionSampledOpponent(engine.matcher, rng=np.random.default_rng(0))
        state = new_hand(
            Position.BTN, Position.CO, "As Qs",
            street=Street.FLOP, board="Ah Kd 7s", pot=7.5,
            hero_stack=97.5, villain_stack=2.0, runout="3c 9h",
        )
        session = HandSession(engine, state, opponent)
        assert session.state.to_call == pytest.approx(2.0)
        assert session.state.villain.stack == 0.0

        session.act(ActionType.CALL)
        # villain has no chips for its stored turn bet and checks instead
        assert session.state.street == Street.TURN
        assert session.state.hero_to_act
        assert session.state.action_log[-1].action == ActionType.CHECK

        while not session.is_complete:
            session.act(ActionType.CHECK)
        assert session.review().unevaluated == 3

    def test_illegal_opponent_reply_leaves_session_unchanged(self, engine):
        class CallsOnTurn:
            def respond(self, state):
                if state.street == Street.TURN:
                    return state.record(ActionType.CALL)
                return state.record(ActionType.CHECK)

        session = HandSession(engine, _hand(), CallsOnTurn())
        before = session.state
        with pytest.raises(InvalidAction):
            session.act(ActionType.CHECK)
        assert session.state is before
        assert session.decisions == ()
        assert session.state.hero_to_act

    def test_config_with_other_buckets_rejected(self):
        with pytest.raises(ValueError):
            DecisionEngine(SolutionRepository.default(), EngineConfig(stack_buckets=(40, 100)))

    def test_config_policy_override_allowed(self):
        config = EngineConfig(blunder_threshold=0.5)
        engine = DecisionEngine(SolutionRepository.default(), config)
        assert engine.config is config
