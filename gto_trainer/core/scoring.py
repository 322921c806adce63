"""Hand scoring: fold a hand's decisions into a 0-100 score and a tier."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from gto_trainer.config import DEFAULT_CONFIG, EngineConfig
from gto_trainer.core.evaluator import Decision, Verdict
from gto_trainer.core.game_state import GameState
from gto_trainer.utils.card import Board

MAX_SCORE = 100


class ScoreTier(StrEnum):
    EXCELLENT = "excellent"
    GOOD = "good"
    DECENT = "decent"
    NEEDS_WORK = "needs_work"


# (minimum score, tier), checked top-down
TIER_THRESHOLDS: tuple[tuple[int, ScoreTier], ...] = (
    (90, ScoreTier.EXCELLENT),
    (75, ScoreTier.GOOD),
    (60, ScoreTier.DECENT),
)

TIER_FEEDBACK: dict[ScoreTier, str] = {
    ScoreTier.EXCELLENT: "Excellent! Your decisions are very close to GTO.",
    ScoreTier.GOOD: "Good work! A few small adjustments will improve your play.",
    ScoreTier.DECENT: "Decent effort. Review the blunders to improve.",
    ScoreTier.NEEDS_WORK: "Keep practicing! Focus on avoiding major blunders.",
}


def decision_loss(decision: Decision, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Per-decision loss: flat penalty for blunders, else frequency-based.

    Non-blunders still lose points for playing low-frequency lines, so
    matching the commonly played GTO line is rewarded even when it is not
    the single highest-EV option.
    """
    if decision.is_blunder:
        return config.blunder_penalty
    return (1.0 - decision.chosen_frequency) * config.frequency_weight


def calculate_score(
    decisions: Sequence[Decision],
    config: EngineConfig = DEFAULT_CONFIG,
) -> int:
    """Score a hand from 0 to 100.

    No decisions means no mistakes: the empty hand scores 100. Rounding
    uses Python's round-half-to-even.
    """
    if not decisions:
        return MAX_SCORE
    mean_loss = sum(decision_loss(d, config) for d in decisions) / len(decisions)
    score = MAX_SCORE - mean_loss * config.score_scale
    return round(min(MAX_SCORE, max(0.0, score)))


def score_tier(score: float) -> ScoreTier:
    for minimum, tier in TIER_THRESHOLDS:
        if score >= minimum:
            return tier
    return ScoreTier.NEEDS_WORK


@dataclass(frozen=True)
class HandReview:
    """Final review of one completed hand."""

    decisions: tuple[Decision, ...]
    board: Board
    pot: float
    score: int
    blunders: int
    tier: ScoreTier
    unevaluated: int = 0  # Hero actions with no matching solution

    @property
    def feedback(self) -> str:
        return TIER_FEEDBACK[self.tier]

    @property
    def good_decisions(self) -> int:
        return sum(1 for d in self.decisions if d.verdict == Verdict.GOOD)

    @property
    def marginal_decisions(self) -> int:
        """Non-blunders on lines the solution rarely or never plays."""
        return sum(1 for d in self.decisions if d.verdict == Verdict.MARGINAL)

    @property
    def total_ev_loss(self) -> float:
        return sum(d.ev_loss for d in self.decisions)


def build_review(
    decisions: Sequence[Decision],
    state: GameState,
    config: EngineConfig = DEFAULT_CONFIG,
    unevaluated: int = 0,
) -> HandReview:
    score = calculate_score(decisions, config)
    return HandReview(
        decisions=tuple(decisions),
        board=state.board,
        pot=state.pot,
        score=score,
        blunders=sum(1 for d in decisions if d.is_blunder),
        tier=score_tier(score),
        unevaluated=unevaluated,
    )
