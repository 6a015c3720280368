"""
mover.py - Per-step Fluid Transport
====================================
One call to `update()` moves every body of fluid in the network once.

Per pipe with fluid, in index order:
  Non-full pipe
    1. Slide every segment toward the lower end by
         shift = gravity * |y_a - y_b|
       Segments stop at the pipe end and queue behind each other.
    2. Whatever part of the leading segment would have passed the end is
       the OVERFLOW. It spills into downhill pipes at that vertex,
       steepest first.
    3. Overflow nobody downhill can take is routed by the pressure solver
       through any full pipes beyond the vertex.
  Full pipe
    4. Push min(gravity * potential, room in target) from the pipe's upper
       end to the target the pressure solver picks.

Every transfer is withdraw → inject → hand back what the target refused,
so the total volume in the network never changes apart from sub-epsilon
dust. After each transfer `sync()` reports full/non-full transitions to
the target resolver, which keeps its cache sound mid-step.
"""

import logging
from typing import Dict, List, Sequence, Set

from .config import DEFAULT_GRAVITY, MINIMUM_FLUID_VOLUME
from .injector import FluidInjector
from .metrics import END_A, END_B, Metrics
from .network import Pipe, Vertex
from .overlap import OverlapResolver
from .pressure import PressureSolver
from .targets import TargetResolver

logger = logging.getLogger(__name__)


class FluidMover:

    def __init__(self, pipes: Sequence[Pipe], metrics: Metrics, injector: FluidInjector,
                 overlap: OverlapResolver, pressure: PressureSolver,
                 targets: TargetResolver, gravity: float = DEFAULT_GRAVITY):
        self.pipes = pipes
        self.metrics = metrics
        self.injector = injector
        self.overlap = overlap
        self.pressure = pressure
        self.targets = targets
        self.gravity = gravity
        self.full: Set[int] = set()   # pipes last reported full

    def update(self) -> Dict[str, float]:
        """
        Advance all fluid by one step.

        Returns counters for the step: volume spilled downhill, volume
        pressed through full pipes, volume pushed out of full pipes, and
        the number of transfers.
        """
        counters = {"spilled": 0.0, "pressed": 0.0, "pushed": 0.0, "transfers": 0}
        for pipe in self.pipes:
            if not pipe.fluids:
                continue
            if self.metrics.has_capacity(pipe):
                self._flow(pipe, counters)
            else:
                self._push(pipe, counters)
        return counters

    def sync(self, pipe: Pipe):
        """Report a full/non-full transition of `pipe`, if there was one."""
        is_full = not self.metrics.has_capacity(pipe)
        was_full = pipe.index in self.full
        if is_full and not was_full:
            self.full.add(pipe.index)
            self.targets.pipe_full(pipe)
        elif was_full and not is_full:
            self.full.discard(pipe.index)
            self.targets.pipe_empty(pipe)

    # ── Gravity ───────────────────────────────────────────────────────────────

    def _flow(self, pipe: Pipe, counters: dict):
        low = self.metrics.lower_vertex(pipe)
        if low is None:
            return
        drop = abs(self.metrics.get_vertex_level(pipe.va) - self.metrics.get_vertex_level(pipe.vb))
        shift = self.gravity * drop
        if shift <= 0.0:
            return

        if self.metrics.vertex_end(pipe, low) == END_B:
            overflow = self._shift_toward_b(pipe, shift)
        else:
            overflow = self._shift_toward_a(pipe, shift)
        self.overlap.resolve(pipe)

        if overflow < MINIMUM_FLUID_VOLUME:
            return
        spilled = self._spill(pipe, low, overflow, counters)
        counters["spilled"] += spilled

        rest = overflow - spilled
        if rest >= MINIMUM_FLUID_VOLUME:
            counters["pressed"] += self._press(pipe, low, rest, counters)

    def _shift_toward_b(self, pipe: Pipe, shift: float) -> float:
        overflow = 0.0
        limit = pipe.capacity
        for i, segment in enumerate(reversed(pipe.fluids)):
            desired = segment.position + shift
            if desired + segment.volume > limit:
                if i == 0:
                    overflow = min(desired + segment.volume - limit, segment.volume)
                desired = limit - segment.volume
            segment.position = max(segment.position, desired)
            limit = segment.position
        return overflow

    def _shift_toward_a(self, pipe: Pipe, shift: float) -> float:
        overflow = 0.0
        limit = 0.0
        for i, segment in enumerate(pipe.fluids):
            desired = segment.position - shift
            if desired < limit:
                if i == 0:
                    overflow = min(limit - desired, segment.volume)
                desired = limit
            segment.position = min(segment.position, desired)
            limit = segment.end
        return overflow

    def _downhill(self, pipe: Pipe, vertex: Vertex) -> List[Pipe]:
        level = self.metrics.get_vertex_level(vertex)
        candidates = []
        for neighbour in self.metrics.get_connected_pipes(pipe, vertex):
            drop = self.metrics.get_vertex_level(self.metrics.other_vertex(neighbour, vertex)) - level
            if drop > 0 and self.metrics.has_capacity(neighbour):
                candidates.append((-drop, neighbour.index))
        return [self.pipes[index] for _, index in sorted(candidates)]

    def _spill(self, pipe: Pipe, vertex: Vertex, amount: float, counters: dict) -> float:
        moved = 0.0
        for neighbour in self._downhill(pipe, vertex):
            wanted = min(amount - moved, self.metrics.spare_capacity(neighbour))
            if wanted < MINIMUM_FLUID_VOLUME:
                continue
            moved += self._transfer(pipe, vertex, neighbour, vertex, wanted, counters)
            if amount - moved < MINIMUM_FLUID_VOLUME:
                break
        return moved

    # ── Pressure ──────────────────────────────────────────────────────────────

    def _press(self, pipe: Pipe, vertex: Vertex, amount: float, counters: dict) -> float:
        if not pipe.fluids:
            return 0.0
        decision = self.pressure.route_from_vertex(pipe, vertex, self._surface(pipe, vertex))
        if decision is None:
            return 0.0
        wanted = min(amount, decision.available_volume)
        if wanted < MINIMUM_FLUID_VOLUME:
            return 0.0
        target = self.pipes[decision.target_pipe]
        return self._transfer(pipe, vertex, target, decision.target_vertex, wanted, counters)

    def _surface(self, pipe: Pipe, vertex: Vertex) -> Vertex:
        """Top of the column of fluid resting against `vertex`."""
        end = self.metrics.vertex_end(pipe, vertex)
        column = pipe.fluids[0] if end == END_A else pipe.fluids[-1]
        fraction = min(1.0, column.volume / pipe.capacity)
        other = self.metrics.other_vertex(pipe, vertex)
        return Vertex(
            vertex.x + (other.x - vertex.x) * fraction,
            vertex.y + (other.y - vertex.y) * fraction,
        )

    def _push(self, pipe: Pipe, counters: dict):
        decision = self.pressure.route(pipe)
        if decision is None:
            return
        wanted = min(self.gravity * decision.potential, decision.available_volume, pipe.volume)
        if wanted < MINIMUM_FLUID_VOLUME:
            return
        target = self.pipes[decision.target_pipe]
        source = self.metrics.higher_vertex(pipe)
        counters["pushed"] += self._transfer(pipe, source, target, decision.target_vertex, wanted, counters)

    # ── Transfers ─────────────────────────────────────────────────────────────

    def _transfer(self, source: Pipe, source_vertex: Vertex, target: Pipe,
                  target_vertex: Vertex, amount: float, counters: dict) -> float:
        taken = self._withdraw(source, source_vertex, amount)
        self.overlap.resolve(source)
        if taken <= 0.0:
            self.sync(source)
            return 0.0

        accepted = self.injector.add(target, target_vertex, taken)
        if taken - accepted > 0.0:
            self.injector.add(source, source_vertex, taken - accepted)

        self.sync(source)
        self.sync(target)
        counters["transfers"] += 1
        return accepted

    def _withdraw(self, pipe: Pipe, vertex: Vertex, amount: float) -> float:
        """Take up to `amount` from the fluid nearest `vertex`."""
        end = self.metrics.vertex_end(pipe, vertex)
        ordered = pipe.fluids if end == END_A else list(reversed(pipe.fluids))
        taken = 0.0
        for segment in ordered:
            wanted = amount - taken
            if wanted <= 0.0:
                break
            take = min(segment.volume, wanted)
            if segment.volume - take < MINIMUM_FLUID_VOLUME:
                take = segment.volume
            if end == END_A:
                segment.position += take
            segment.volume -= take
            taken += take
        return taken
