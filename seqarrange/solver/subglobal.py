"""Batch-wise scheduling of objects onto one plate.

Objects are taken in arena order in batches of ``object_group_size``.
Objects placed by earlier batches stay fixed. When a batch cannot be placed
its last present member is dropped and the rest is retried; dropped members
are left for the next plate. A failing batch has no model whose times could
order its members, so the member dropped is the last one in arena order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..constants import GROUND_PRESENCE_TIME, PROGRESS_PHASES_PER_OBJECT, PROGRESS_RANGE, make_extra_progress
from ..logging_utils import apply_debug_logging
from ..model import InvariantViolationError, ProgressCallback, ProgressRange, SolvableObject, SolverConfiguration
from ..rational import Rational
from .builder import ArrangementProblem
from .optimizer import optimize_binary_centered
from .session import SolverSession
from .types import DecisionVectors, Fixed

logger = logging.getLogger(__name__)

Optimizer = Callable[..., Optional[DecisionVectors]]


class ProgressTracker:
    """Reports monotone progress percentages derived from per-object phases."""

    def __init__(self, callback: Optional[ProgressCallback], object_count: int) -> None:
        self.callback = callback
        self.total_phases = make_extra_progress(object_count * PROGRESS_PHASES_PER_OBJECT)
        self.done_phases = 0
        self.last_reported = 0

    def percent(self, phases: int) -> int:
        if self.total_phases <= 0:
            return PROGRESS_RANGE
        return min(PROGRESS_RANGE, phases * PROGRESS_RANGE // self.total_phases)

    def report(self, percent: int) -> None:
        percent = max(0, min(PROGRESS_RANGE, int(percent)))
        if percent <= self.last_reported:
            return
        self.last_reported = percent
        if self.callback is not None:
            self.callback(percent)

    def range_for(self, object_count: int) -> ProgressRange:
        start = self.percent(self.done_phases)
        end = self.percent(self.done_phases + object_count * PROGRESS_PHASES_PER_OBJECT)
        return ProgressRange(start, max(start, end))

    def advance(self, object_count: int) -> None:
        self.done_phases += object_count * PROGRESS_PHASES_PER_OBJECT
        self.report(self.percent(self.done_phases))

    def finish(self) -> None:
        self.report(PROGRESS_RANGE)


@dataclass
class PlateSchedule:
    """Outcome of scheduling one plate; indices refer to the arena passed in."""

    decided: List[int] = field(default_factory=list)
    remaining: List[int] = field(default_factory=list)
    decision: DecisionVectors = field(default_factory=DecisionVectors)

    def ordered(self) -> List[int]:
        return sorted(self.decided, key=lambda index: self.decision.t[index])


def augment_temporal_spread(config: SolverConfiguration, decision: DecisionVectors, decided: Sequence[int]) -> None:
    """Renumber the times of ``decided`` objects to evenly spaced values, keeping their order."""

    order = sorted(decided, key=lambda index: decision.t[index])
    for previous, current in zip(order, order[1:]):
        if decision.t[previous] == decision.t[current]:
            raise InvariantViolationError(f"objects {previous} and {current} share schedule time {decision.t[current]}")

    time = GROUND_PRESENCE_TIME
    for index in order:
        time += 2 * config.temporal_spread * config.object_group_size
        decision.t[index] = Rational(time)


def glue_successors(objects: Sequence[SolvableObject]) -> Dict[int, int]:
    """Arena index of each glued object mapped to the index of the object after it."""

    return {index: index + 1 for index, obj in enumerate(objects[:-1]) if obj.glued_to_next}


def schedule_plate(
    config: SolverConfiguration,
    objects: Sequence[SolvableObject],
    *,
    successors: Optional[Dict[int, int]] = None,
    lead: Optional[int] = None,
    progress: Optional[ProgressTracker] = None,
    optimizer: Optimizer = optimize_binary_centered,
) -> Optional[PlateSchedule]:
    """Place as many of ``objects`` as possible on one plate.

    ``lead`` is the arena index of an object that must be printed before
    every other one (its glued predecessor went onto the previous plate).
    Returns ``None`` when not even one object can be placed.
    """

    if successors is None:
        successors = glue_successors(objects)
    schedule = PlateSchedule()
    count = len(objects)
    position = 0

    while position < count:
        batch = list(range(position, min(position + config.object_group_size, count)))
        position += len(batch)
        pending = list(range(position, count))

        fixed: Dict[int, Fixed] = {index: schedule.decision.position(index) for index in schedule.decided}
        session = SolverSession(config.optimization_timeout)
        problem = ArrangementProblem(
            session,
            config,
            objects,
            fixed,
            batch,
            successors=successors,
            pending=pending,
            lead=lead,
        )
        problem.build()

        progress_range = progress.range_for(len(batch)) if progress is not None else None
        report = progress.report if progress is not None else None

        present = list(batch)
        missing: List[int] = []
        values: Optional[DecisionVectors] = None
        while present:
            values = optimizer(problem, present, progress=report, progress_range=progress_range)
            if values is not None:
                break
            missing.insert(0, present.pop())
            logger.debug("Dropping object %d from batch, %d left", objects[missing[0]].id, len(present))

        if values is None:
            if not schedule.decided:
                logger.info("Not even one object of %d fits onto the plate", count)
                return None
            schedule.remaining.extend(batch)
            schedule.remaining.extend(pending)
            logger.info("Batch %s cannot be placed; deferring %d objects", batch, len(batch) + len(pending))
            break

        schedule.decision.update(values, present)
        schedule.decided.extend(present)
        schedule.remaining.extend(missing)
        augment_temporal_spread(config, schedule.decision, schedule.decided)
        if progress is not None:
            progress.advance(len(present))
        logger.info(
            "Placed batch of %d objects (%d missing); %d objects on plate so far, %d solver checks",
            len(present),
            len(missing),
            len(schedule.decided),
            session.check_count,
        )

    schedule.remaining.sort()
    return schedule


apply_debug_logging(globals(), logger=logger, skip={"ProgressTracker"})


__all__ = [
    "PlateSchedule",
    "ProgressTracker",
    "augment_temporal_spread",
    "glue_successors",
    "schedule_plate",
]
