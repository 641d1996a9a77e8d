from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, Union

import z3

from ..rational import Rational


class Presence(enum.Enum):
    """How an object takes part in one batch of the constraint model."""

    PRESENT = "present"
    UNDECIDED = "undecided"
    ABSENT = "absent"


@dataclass(frozen=True)
class Fixed:
    """Position and time of an object placed by an earlier batch."""

    x: Rational
    y: Rational
    t: Rational


@dataclass(frozen=True)
class Variable:
    """Solver variables of an object that is still being placed."""

    x: z3.ArithRef
    y: z3.ArithRef
    t: z3.ArithRef


PositionRef = Union[Fixed, Variable]


@dataclass
class DecisionVectors:
    """Resolved X, Y and T values keyed by arena index."""

    x: Dict[int, Rational] = field(default_factory=dict)
    y: Dict[int, Rational] = field(default_factory=dict)
    t: Dict[int, Rational] = field(default_factory=dict)

    def set(self, index: int, x: Rational, y: Rational, t: Rational) -> None:
        self.x[index] = x
        self.y[index] = y
        self.t[index] = t

    def position(self, index: int) -> Fixed:
        return Fixed(self.x[index], self.y[index], self.t[index])

    def update(self, other: "DecisionVectors", indices: Iterable[int]) -> None:
        for index in indices:
            self.set(index, other.x[index], other.y[index], other.t[index])

    def __contains__(self, index: object) -> bool:
        return index in self.t

    def __len__(self) -> int:
        return len(self.t)


__all__ = ["DecisionVectors", "Fixed", "PositionRef", "Presence", "Variable"]
