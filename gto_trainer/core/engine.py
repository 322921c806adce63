"""DecisionEngine: top-level entry point for training-hand evaluation.

Validates and applies an action, matches the pre-action state to its
stored solution, scores hero actions, and builds the end-of-hand review.
HandSession wraps one hand: it owns that hand's GameState and decision
list and asks an injected opponent strategy for villain replies.

Includes structured logging for decision transparency. Matching failures
never fabricate a solution; they surface as an outcome without feedback.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, replace

from gto_trainer.config import DEFAULT_CONFIG, EngineConfig
from gto_trainer.core.evaluator import Decision, DecisionEvaluator
from gto_trainer.core.game_state import ActionRecord, GameState, apply
from gto_trainer.core.scoring import HandReview, build_review
from gto_trainer.errors import InvalidAction, MatchError
from gto_trainer.solver.matcher import ScenarioMatcher
from gto_trainer.solver.repository import SolutionRepository
from gto_trainer.strategy.opponent import OpponentStrategy
from gto_trainer.utils.constants import ActionType

logger = logging.getLogger("gto_trainer.engine")


@dataclass(frozen=True)
class ActionOutcome:
    """Result of submitting one action.

    Attributes:
        state: State after the action (and, in a HandSession, after any
            villain replies).
        decision: Evaluation of a hero action, None for villain actions or
            when no solution matched.
        error: The matching failure that left the action without feedback.
    """

    state: GameState
    decision: Decision | None = None
    error: MatchError | None = None

    @property
    def feedback_available(self) -> bool:
        return self.decision is not None


class DecisionEngine:
    """Stateless orchestrator over a shared, read-only repository.

    One engine can serve many concurrent hands; each hand's GameState is
    passed in and a new one returned.

    Usage:
        engine = DecisionEngine()
        outcome = engine.process(state, state.record(ActionType.CHECK))
    """

    def __init__(
        self,
        repository: SolutionRepository | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Build an engine over repository (the bundled dataset by default).

        Raises:
            ValueError: If config buckets stacks differently from the
                repository the keys were built with.
        """
        if repository is None:
            repository = SolutionRepository.default(config or DEFAULT_CONFIG)
        self._config = config or repository.config
        self._matcher = ScenarioMatcher(repository, self._config)
        self._evaluator = DecisionEvaluator(self._config)

    @property
    def matcher(self) -> ScenarioMatcher:
        return self._matcher

    @property
    def config(self) -> EngineConfig:
        return self._config

    def process(self, state: GameState, action: ActionRecord) -> ActionOutcome:
        """Apply an action and, for the hero, evaluate it.

        Raises:
            InvalidAction: If the action is illegal; nothing is evaluated.
        """
        successor = apply(state, action, self._config)
        if not state.player(action.position).is_hero:
            return ActionOutcome(state=successor)

        t0 = time.perf_counter()
        try:
            solution = self._matcher.match(state)
        except MatchError as e:
            logger.warning("No feedback for %s: %s", action, e)
            return ActionOutcome(state=successor, error=e)

        decision = self._evaluator.evaluate(solution, successor.action_log[-1])
        logger.info(
            "%s %s -> freq=%.0f%%, ev=%.2f, best=%s%s (%.1fms)",
            state.street.value,
            action,
            decision.chosen_frequency * 100,
            decision.chosen_ev,
            decision.best_action.label,
            " BLUNDER" if decision.is_blunder else "",
            (time.perf_counter() - t0) * 1000,
        )
        return ActionOutcome(state=successor, decision=decision)

    def review(
        self,
        decisions: Sequence[Decision],
        state: GameState,
        unevaluated: int = 0,
    ) -> HandReview:
        """Build the final review for a hand."""
        review = build_review(decisions, state, self._config, unevaluated)
        logger.info(
            "Hand reviewed: score=%d (%s), %d decisions, %d blunders",
            review.score, review.tier.value, len(decisions), review.blunders,
        )
        return review


class HandSession:
    """One training hand: owns its GameState and decision list.

    Villain replies come from the injected opponent strategy whenever the
    villain is to act. Without one, the caller submits villain actions
    through ``villain_act``.
    """

    def __init__(
        self,
        engine: DecisionEngine,
        state: GameState,
        opponent: OpponentStrategy | None = None,
    ) -> None:
        self._engine = engine
        self._opponent = opponent
        self._decisions: list[Decision] = []
        self._unevaluated = 0
        self._state = self._with_replies(state)

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def decisions(self) -> tuple[Decision, ...]:
        return tuple(self._decisions)

    @property
    def is_complete(self) -> bool:
        return self._state.is_terminal

    def act(self, action: ActionType, size: float | None = None) -> ActionOutcome:
        """Submit a hero action, then let the opponent reply.

        Raises:
            InvalidAction: If it is not the hero's turn, or if the hero action
                or an opponent reply is illegal. The session is unchanged.
        """
        record = self._state.record(action, size)
        if not self._state.is_terminal and record.position != self._state.hero.position:
            raise InvalidAction(record, "waiting for the villain to act")

        outcome = self._engine.process(self._state, record)
        # Villain replies are resolved before anything is committed
        state = self._with_replies(outcome.state)
        self._state = state
        if outcome.decision is not None:
            self._decisions.append(outcome.decision)
        else:
            self._unevaluated += 1
        return replace(outcome, state=state)

    def villain_act(self, action: ActionType, size: float | None = None) -> GameState:
        """Submit a villain action manually."""
        record = self._state.record(action, size)
        if not self._state.is_terminal and record.position != self._state.villain.position:
            raise InvalidAction(record, "it is the hero's turn")
        self._state = self._with_replies(self._engine.process(self._state, record).state)
        return self._state

    def review(self) -> HandReview:
        """Review the finished hand.

        Raises:
            ValueError: If the hand is still in progress.
        """
        if not self._state.is_terminal:
            raise ValueError("Cannot review a hand that is still in progress")
        return self._engine.review(self._decisions, self._state, self._unevaluated)

    def _with_replies(self, state: GameState) -> GameState:
        """Play opponent actions until the hero is to act or the hand ends."""
        if self._opponent is None:
            return state
        while not state.is_terminal and not state.hero_to_act:
            action = self._opponent.respond(state)
            if action is None:
                break
            logger.debug("Villain responds: %s", action)
            state = self._engine.process(state, action).state
        return state
