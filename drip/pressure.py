"""
pressure.py - Choosing Where Pressed Fluid Goes
================================================
A full pipe (or a pipe whose downhill end is blocked by full pipes) can
only move fluid by pushing it through the full chain to a target.

Driving head for a target:

    potential = level(target.vertex) - level(target.highest_vertex)

Levels grow downward, so this is positive when the top of the full chain
sits physically above the point where fluid would enter the target.
The target with the largest positive potential wins. Ties go to the
lowest pipe index, then the entry vertex (y, x), so runs are repeatable.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .config import MINIMUM_POTENTIAL
from .metrics import Metrics
from .network import Pipe, Vertex
from .targets import Target, TargetResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingDecision:
    through_pipe: int        # pipe the volume leaves from
    target_pipe: int
    target_vertex: Vertex    # where it enters the target
    potential: float
    available_volume: float  # room left in the target


class PressureSolver:

    def __init__(self, pipes: Sequence[Pipe], metrics: Metrics, targets: TargetResolver):
        self.pipes = pipes
        self.metrics = metrics
        self.targets = targets

    def potential(self, target: Target) -> float:
        return (
            self.metrics.get_vertex_level(target.vertex)
            - self.metrics.get_vertex_level(target.highest_vertex)
        )

    def route(self, pipe: Pipe) -> Optional[RoutingDecision]:
        """Routing for a full pipe: targets reachable from either end."""
        candidates = (
            self.targets.get_for_vertex(pipe, pipe.va)
            + self.targets.get_for_vertex(pipe, pipe.vb)
        )
        return self._select(pipe, candidates)

    def route_from_vertex(self, pipe: Pipe, vertex: Vertex,
                          surface: Optional[Vertex] = None) -> Optional[RoutingDecision]:
        """
        Routing for fluid pressed against `vertex` end of a non-full pipe.

        Only targets beyond full pipes qualify. Open pipes at `vertex`
        itself are gravity's business: downhill ones were already offered
        the overflow, and fluid pushed into the others runs straight back.

        `surface` is the top of the pressed column inside `pipe`; when it
        is higher than the group head it becomes the reference instead.
        """
        candidates = [
            target for target in self.targets.get_for_vertex(pipe, vertex)
            if not self.metrics.points_match(target.vertex, vertex)
        ]
        return self._select(pipe, candidates, surface)

    def _select(self, pipe: Pipe, candidates: Iterable[Target],
                surface: Optional[Vertex] = None) -> Optional[RoutingDecision]:
        best, best_key = None, None
        for target in candidates:
            if target.pipe == pipe.index:
                continue
            potential = self.potential(target)
            if surface is not None:
                potential = max(potential, self.metrics.get_vertex_level(target.vertex)
                                - self.metrics.get_vertex_level(surface))
            if potential <= MINIMUM_POTENTIAL:
                continue
            key = (-potential, target.pipe, target.vertex.y, target.vertex.x)
            if best_key is None or key < best_key:
                best, best_key = target, key

        if best is None:
            return None

        target_pipe = self.pipes[best.pipe]
        return RoutingDecision(
            through_pipe=pipe.index,
            target_pipe=best.pipe,
            target_vertex=best.vertex,
            potential=-best_key[0],
            available_volume=self.metrics.spare_capacity(target_pipe),
        )
