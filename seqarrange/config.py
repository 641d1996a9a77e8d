"""Default solver configuration holder."""

from __future__ import annotations

import copy

from .model import SolverConfiguration

_DEFAULT_SOLVER_CONFIGURATION = SolverConfiguration()


def get_default_solver_configuration() -> SolverConfiguration:
    return copy.deepcopy(_DEFAULT_SOLVER_CONFIGURATION)


def set_default_solver_configuration(config: SolverConfiguration) -> None:
    global _DEFAULT_SOLVER_CONFIGURATION
    _DEFAULT_SOLVER_CONFIGURATION = copy.deepcopy(config)


__all__ = ["get_default_solver_configuration", "set_default_solver_configuration"]
