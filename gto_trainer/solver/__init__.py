"""Stored GTO solution lookup for the trainer's decision engine.

Solutions are precomputed by an external solver and loaded once into a
read-only index. Live hands are matched to them through suit-agnostic
board signatures, stack-depth buckets and canonical action patterns.

Key public API:
    SolutionRepository -- Indexed, atomically reloadable solution store
    ScenarioMatcher    -- GameState -> ScenarioKey -> GTOSolution
    GTOSolution        -- Immutable mixed strategy for one scenario
    SolutionDB         -- SQLite store for large datasets, feeds from_db
"""

from gto_trainer.solver.data_structures import GTOAction, GTOSolution, ScenarioKey
from gto_trainer.solver.matcher import ScenarioMatcher
from gto_trainer.solver.repository import SolutionRepository
from gto_trainer.solver.solution_db import SolutionDB

__all__ = [
    "GTOAction",
    "GTOSolution",
    "ScenarioKey",
    "ScenarioMatcher",
    "SolutionDB",
    "SolutionRepository",
]
