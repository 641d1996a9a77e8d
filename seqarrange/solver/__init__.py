"""Constraint model, refinement, bounding optimizer and plate scheduler."""

from __future__ import annotations

from .builder import ArrangementProblem, Bounds
from .optimizer import check_area, check_extents, optimize_binary_centered, optimize_linear
from .refine import find_line_violations, refine_solution
from .session import SolverSession
from .subglobal import PlateSchedule, ProgressTracker, augment_temporal_spread, glue_successors, schedule_plate
from .types import DecisionVectors, Fixed, PositionRef, Presence, Variable

__all__ = [
    "ArrangementProblem",
    "Bounds",
    "DecisionVectors",
    "Fixed",
    "PlateSchedule",
    "PositionRef",
    "Presence",
    "ProgressTracker",
    "SolverSession",
    "Variable",
    "augment_temporal_spread",
    "check_area",
    "check_extents",
    "find_line_violations",
    "glue_successors",
    "optimize_binary_centered",
    "optimize_linear",
    "refine_solution",
    "schedule_plate",
]
