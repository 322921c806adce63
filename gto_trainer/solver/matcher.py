"""Scenario matching: live GameState -> ScenarioKey -> stored GTOSolution."""

from __future__ import annotations

import logging

from gto_trainer.config import EngineConfig
from gto_trainer.core.game_state import GameState
from gto_trainer.errors import AmbiguousMatch, SolutionNotFound
from gto_trainer.solver.board_bucketing import (
    action_pattern,
    board_signature,
    nearest_stack_bucket,
)
from gto_trainer.solver.data_structures import GTOSolution, ScenarioKey
from gto_trainer.solver.repository import SolutionRepository
from gto_trainer.utils.constants import Position

logger = logging.getLogger("gto_trainer.solver.matcher")


class ScenarioMatcher:
    """Resolves game states to stored solutions.

    A config other than the repository's may change matching policy
    (coarse fallback) but must bucket stacks the way the stored keys were
    built.

    Usage:
        matcher = ScenarioMatcher(SolutionRepository.default())
        solution = matcher.match(state)
    """

    def __init__(
        self,
        repository: SolutionRepository,
        config: EngineConfig | None = None,
    ) -> None:
        config = config or repository.config
        stored = repository.config
        if (config.stack_buckets, config.bucket_tolerance) != (
            stored.stack_buckets, stored.bucket_tolerance,
        ):
            raise ValueError(
                "Matcher stack buckets "
                f"{config.stack_buckets} (+/-{config.bucket_tolerance:g}bb) differ from "
                f"the repository's {stored.stack_buckets} (+/-{stored.bucket_tolerance:g}bb)"
            )
        self._repository = repository
        self._config = config

    @property
    def repository(self) -> SolutionRepository:
        return self._repository

    @property
    def config(self) -> EngineConfig:
        return self._config

    def key_for(self, state: GameState, perspective: Position | None = None) -> ScenarioKey:
        """Build the lookup key for the player ``perspective`` (hero by default).

        Raises:
            NoBucketAvailable: If the effective stack fits no bucket.
        """
        actor = state.player(perspective) if perspective else state.hero
        opponent = next(p for p in state.players if p.position != actor.position)
        return ScenarioKey(
            street=state.street,
            board_texture=board_signature(state.board.cards),
            hero_position=actor.position,
            villain_position=opponent.position,
            stack_bucket=nearest_stack_bucket(
                state.effective_stack,
                self._config.stack_buckets,
                self._config.bucket_tolerance,
            ),
            action_pattern=action_pattern(state.action_log, state.street, state.pot_type),
        )

    def match(self, state: GameState, perspective: Position | None = None) -> GTOSolution:
        """Find the stored solution for the state's current decision point.

        Raises:
            NoBucketAvailable: If the effective stack fits no bucket.
            SolutionNotFound: If nothing is stored for the key.
            AmbiguousMatch: If the coarse fallback finds several candidates.
        """
        key = self.key_for(state, perspective)
        try:
            solution = self._repository.lookup(key)
        except SolutionNotFound:
            if not self._config.coarse_fallback:
                raise
            solution = self._match_coarse(key)
        logger.debug("Matched %s -> %s", key, solution.solution_id or solution.key)
        return solution

    def _match_coarse(self, key: ScenarioKey) -> GTOSolution:
        candidates = self._repository.lookup_coarse(key)
        if not candidates:
            raise SolutionNotFound(key)
        if len(candidates) > 1:
            raise AmbiguousMatch(key, candidates)
        logger.info(
            "No exact solution for %s; using coarse match %s",
            key,
            candidates[0].solution_id or candidates[0].key,
        )
        return candidates[0]
