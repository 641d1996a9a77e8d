from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Union

import z3

RATIONAL_PRECISION = 1_000_000
_EPSILON = 1e-4


def _truncate(value: float) -> int:
    return int(value)


@dataclass(frozen=True)
class Rational:
    """Exact numerator/denominator pair used for solver-derived values."""

    numerator: int = 0
    denominator: int = 1

    def __post_init__(self) -> None:
        if self.denominator == 0:
            raise ZeroDivisionError("Rational denominator must be non-zero")
        object.__setattr__(self, "numerator", int(self.numerator))
        object.__setattr__(self, "denominator", int(self.denominator))

    @classmethod
    def from_value(cls, value: Union["Rational", int, Fraction]) -> "Rational":
        if isinstance(value, Rational):
            return value
        if isinstance(value, Fraction):
            return cls(value.numerator, value.denominator)
        if isinstance(value, int):
            return cls(value, 1)
        raise TypeError(f"cannot build Rational from {type(value).__name__}")

    @classmethod
    def from_z3(cls, expr: Any) -> "Rational":
        """Build a rational from a z3 numeral taken out of a model.

        Rational numerals are copied exactly. Algebraic numerals and values
        with a zero numerator that still evaluate to something noticeable are
        approximated at ``RATIONAL_PRECISION``.
        """

        if z3.is_int_value(expr):
            return cls(expr.as_long(), 1)
        if z3.is_rational_value(expr):
            numerator = expr.numerator_as_long()
            denominator = expr.denominator_as_long()
            if denominator != 0:
                return cls(numerator, denominator)
        if z3.is_algebraic_value(expr):
            approx = expr.approx(20)
            value = float(Fraction(approx.numerator_as_long(), approx.denominator_as_long()))
        else:
            value = float(Fraction(str(expr.as_decimal(20)).rstrip("?")))
        if abs(value) <= _EPSILON:
            return cls(0, 1)
        return cls(_truncate(value * RATIONAL_PRECISION), RATIONAL_PRECISION)

    def is_positive(self) -> bool:
        return (self.numerator > 0 and self.denominator > 0) or (self.numerator < 0 and self.denominator < 0)

    def is_negative(self) -> bool:
        return (self.numerator > 0 and self.denominator < 0) or (self.numerator < 0 and self.denominator > 0)

    def as_fraction(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    def as_float(self) -> float:
        return self.numerator / self.denominator

    def as_int(self) -> int:
        """Integer part, truncated toward zero."""

        quotient = abs(self.numerator) // abs(self.denominator)
        return -quotient if self.is_negative() else quotient

    def normalize(self) -> "Rational":
        """Lossy re-expression over ``RATIONAL_PRECISION`` to suppress noise."""

        return Rational(_truncate(self.as_float() * RATIONAL_PRECISION), RATIONAL_PRECISION)

    def to_z3(self, ctx: z3.Context | None = None) -> z3.ArithRef:
        numerator, denominator = self.numerator, self.denominator
        if denominator < 0:
            numerator, denominator = -numerator, -denominator
        return z3.Q(numerator, denominator, ctx=ctx)

    def __add__(self, other: object) -> "Rational":
        if isinstance(other, int):
            return Rational(self.numerator + other * self.denominator, self.denominator)
        if isinstance(other, Rational):
            result = self.as_fraction() + other.as_fraction()
            return Rational(result.numerator, result.denominator)
        return NotImplemented

    __radd__ = __add__

    def __mul__(self, other: object) -> "Rational":
        if isinstance(other, int):
            return Rational(self.numerator * other, self.denominator)
        return NotImplemented

    __rmul__ = __mul__

    def _key(self, other: object) -> Fraction:
        if isinstance(other, Rational):
            return other.as_fraction()
        if isinstance(other, (int, Fraction)):
            return Fraction(other)
        raise TypeError(f"cannot compare Rational with {type(other).__name__}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Rational, int, Fraction)):
            return NotImplemented
        return self.as_fraction() == self._key(other)

    def __hash__(self) -> int:
        return hash(self.as_fraction())

    def __lt__(self, other: object) -> bool:
        return self.as_fraction() < self._key(other)

    def __le__(self, other: object) -> bool:
        return self.as_fraction() <= self._key(other)

    def __gt__(self, other: object) -> bool:
        return self.as_fraction() > self._key(other)

    def __ge__(self, other: object) -> bool:
        return self.as_fraction() >= self._key(other)

    def __float__(self) -> float:
        return self.as_float()

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"

    def __repr__(self) -> str:
        return f"Rational({self.numerator}, {self.denominator})"


__all__ = ["RATIONAL_PRECISION", "Rational"]
