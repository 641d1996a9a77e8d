"""Thin wrapper around one incremental z3 solver instance."""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import Iterable, Optional, Sequence, Union

import z3

from ..rational import Rational

logger = logging.getLogger(__name__)

Constant = Union[int, Fraction, Rational]


class SolverSession:
    """Owns a z3 context, its solver and the counter for fresh variable names.

    Every expression handed to the session must live in :attr:`ctx`; use
    :meth:`constant`, :meth:`real` and :meth:`boolean` to create terms.
    """

    def __init__(self, timeout_ms: int) -> None:
        self.ctx = z3.Context()
        self.solver = z3.Solver(ctx=self.ctx)
        self.solver.set("timeout", int(timeout_ms))
        self.timeout_ms = int(timeout_ms)
        self._fresh_counter = 0
        self.check_count = 0

    def real(self, name: str) -> z3.ArithRef:
        return z3.Real(name, self.ctx)

    def boolean(self, name: str) -> z3.BoolRef:
        return z3.Bool(name, self.ctx)

    def fresh_name(self, prefix: str) -> str:
        self._fresh_counter += 1
        return f"{prefix}-{self._fresh_counter}"

    def fresh_real(self, prefix: str) -> z3.ArithRef:
        return self.real(self.fresh_name(prefix))

    def fresh_boolean(self, prefix: str) -> z3.BoolRef:
        return self.boolean(self.fresh_name(prefix))

    def constant(self, value: Constant) -> z3.ArithRef:
        if isinstance(value, Rational):
            return value.to_z3(self.ctx)
        if isinstance(value, Fraction):
            return z3.Q(value.numerator, value.denominator, ctx=self.ctx)
        if isinstance(value, int):
            return z3.RealVal(value, ctx=self.ctx)
        raise TypeError(f"unsupported solver constant {type(value).__name__}")

    def term(self, value: Union[Constant, z3.ArithRef]) -> z3.ArithRef:
        if isinstance(value, z3.ArithRef):
            return value
        return self.constant(value)

    def true(self) -> z3.BoolRef:
        return z3.BoolVal(True, ctx=self.ctx)

    def add(self, *formulas: z3.BoolRef) -> None:
        for formula in formulas:
            self.solver.add(formula)

    def check(self, assumptions: Sequence[z3.BoolRef] = ()) -> bool:
        """Return ``True`` only for ``sat``; ``unknown`` (e.g. timeout) counts as failure."""

        self.check_count += 1
        result = self.solver.check(*assumptions)
        if result == z3.unknown:
            logger.debug("Solver returned unknown: %s", self.solver.reason_unknown())
        return result == z3.sat

    def model(self) -> z3.ModelRef:
        return self.solver.model()

    def value(self, model: z3.ModelRef, expr: z3.ArithRef) -> Rational:
        return Rational.from_z3(model.eval(expr, model_completion=True))

    def values(self, model: z3.ModelRef, exprs: Iterable[z3.ArithRef]) -> list:
        return [self.value(model, expr) for expr in exprs]

    def conjunction(self, formulas: Sequence[z3.BoolRef]) -> Optional[z3.BoolRef]:
        if not formulas:
            return None
        if len(formulas) == 1:
            return formulas[0]
        return z3.And(*formulas)

    def disjunction(self, formulas: Sequence[z3.BoolRef]) -> Optional[z3.BoolRef]:
        if not formulas:
            return None
        if len(formulas) == 1:
            return formulas[0]
        return z3.Or(*formulas)


__all__ = ["Constant", "SolverSession"]
