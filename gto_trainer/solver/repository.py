"""Read-only, indexed store of precomputed GTO solutions.

Provides O(1) lookups by ScenarioKey. The index is an immutable snapshot:
``load`` builds and validates a complete new index, then swaps it in with
a single attribute assignment. Concurrent readers therefore never see a
partially rebuilt index and take no lock; a failed load leaves the
previous generation serving.

Usage:
    repo = SolutionRepository.default()
    solution = repo.lookup(key)
"""

from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from gto_trainer.config import DEFAULT_CONFIG, EngineConfig
from gto_trainer.errors import DatasetError, SolutionNotFound
from gto_trainer.solver.data_structures import GTOSolution, ScenarioKey
from gto_trainer.solver.loader import (
    DEFAULT_DATA_PATH,
    read_records,
    solutions_from_records,
    validate_solution,
)

if TYPE_CHECKING:
    from gto_trainer.solver.solution_db import SolutionDB

logger = logging.getLogger("gto_trainer.solver.repository")


@dataclass(frozen=True)
class _Index:
    """One immutable generation of the solution index."""

    by_key: Mapping[ScenarioKey, GTOSolution] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    by_coarse: Mapping[tuple[str, ...], tuple[GTOSolution, ...]] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    generation: int = 0


def _build_index(
    solutions: Iterable[GTOSolution],
    generation: int,
    config: EngineConfig,
) -> _Index:
    by_key: dict[ScenarioKey, GTOSolution] = {}
    by_coarse: dict[tuple[str, ...], list[GTOSolution]] = defaultdict(list)
    for solution in solutions:
        validate_solution(solution, config.frequency_tolerance, config.max_overbet)
        existing = by_key.get(solution.key)
        if existing is not None:
            raise DatasetError(
                solution.solution_id or None,
                f"duplicate scenario key {solution.key} "
                f"(already used by {existing.solution_id or '?'})",
            )
        by_key[solution.key] = solution
        by_coarse[solution.key.coarse].append(solution)
    return _Index(
        by_key=MappingProxyType(by_key),
        by_coarse=MappingProxyType({k: tuple(v) for k, v in by_coarse.items()}),
        generation=generation,
    )


class SolutionRepository:
    """Indexed, read-only access to the GTO solution dataset."""

    def __init__(
        self,
        solutions: Iterable[GTOSolution] = (),
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> None:
        self._config = config
        self._write_lock = threading.Lock()
        self._index = _Index()
        solutions = list(solutions)
        if solutions:
            self.load(solutions)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> SolutionRepository:
        return cls(solutions_from_records(records, config), config)

    @classmethod
    def from_json(
        cls,
        path: Path | str,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> SolutionRepository:
        return cls.from_records(read_records(path), config)

    @classmethod
    def from_db(
        cls,
        db: SolutionDB,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> SolutionRepository:
        return cls.from_records(db.iter_records(), config)

    @classmethod
    def default(cls, config: EngineConfig = DEFAULT_CONFIG) -> SolutionRepository:
        """Repository over the bundled sample dataset."""
        return cls.from_json(DEFAULT_DATA_PATH, config)

    def load(self, solutions: Iterable[GTOSolution]) -> int:
        """Replace the whole index with a new generation.

        Returns:
            The new generation number.

        Raises:
            DatasetError: If any solution is invalid or keys collide. The
                previous generation stays in service.
        """
        t0 = time.perf_counter()
        with self._write_lock:
            generation = self._index.generation + 1
            try:
                index = _build_index(solutions, generation, self._config)
            except DatasetError:
                logger.exception(
                    "Solution load rejected; keeping generation %d",
                    self._index.generation,
                )
                raise
            self._index = index

        logger.info(
            "Loaded %d solutions (generation %d, %.1fms)",
            len(index.by_key),
            generation,
            (time.perf_counter() - t0) * 1000,
        )
        return generation

    def reload_json(self, path: Path | str) -> int:
        """Load a fresh generation from a JSON dataset file."""
        return self.load(solutions_from_records(read_records(path), self._config))

    def lookup(self, key: ScenarioKey) -> GTOSolution:
        """Return the solution stored for key.

        Raises:
            SolutionNotFound: If no solution is stored for key.
        """
        solution = self._index.by_key.get(key)
        if solution is None:
            raise SolutionNotFound(key)
        return solution

    def lookup_coarse(self, key: ScenarioKey) -> tuple[GTOSolution, ...]:
        """All solutions sharing the key's suit pattern, ignoring ranks."""
        return self._index.by_coarse.get(key.coarse, ())

    @property
    def generation(self) -> int:
        return self._index.generation

    @property
    def config(self) -> EngineConfig:
        return self._config

    def keys(self) -> list[ScenarioKey]:
        return list(self._index.by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._index.by_key

    def __len__(self) -> int:
        return len(self._index.by_key)

    def __iter__(self) -> Iterator[GTOSolution]:
        return iter(tuple(self._index.by_key.values()))
