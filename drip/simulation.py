"""
simulation.py - Fluid Network Simulation
=========================================
Ties the engine together. One call to `update()` advances the fluid by
one step.

Components, wired explicitly here and nowhere else:

    Metrics ─┬─ OverlapResolver ── FluidInjector ─┐
             ├─ TargetResolver ── PressureSolver ─┼─ FluidMover
             └────────────────────────────────────┘

The pipe list is shared by reference. Fluid segments live on the pipes
and the target cache lives on the resolver; nothing is global, so any
number of simulations can run side by side.
"""

import logging
import math
import numbers
import time
from typing import Optional, Sequence, Union

from .config import DEFAULT_GRAVITY
from .errors import PreconditionError
from .injector import FluidInjector
from .metrics import Metrics
from .mover import FluidMover
from .network import Pipe, Vertex, as_vertex, build_network, is_real
from .overlap import OverlapResolver
from .pressure import PressureSolver
from .targets import TargetResolver

logger = logging.getLogger(__name__)


class FluidNetworkSimulation:
    """
    Fluid flowing under gravity through a network of pipes.

    Usage:
        sim = FluidNetworkSimulation(pipes, gravity=0.1)
        sim.add_fluid(33)                  # at the highest vertex
        for frame in range(100):
            sim.update()
            segments = sim.pipes[0].fluids # hand to a renderer
    """

    def __init__(self, network: Sequence[Union[Pipe, dict]], gravity: float = DEFAULT_GRAVITY):
        """
        Args:
            network : Pipe objects, or records {va, vb, ca, cb} to build them from
            gravity : Driving force scale. Higher gravity, faster fluid.
        """
        if not is_real(gravity) or not math.isfinite(gravity) or gravity < 0:
            raise PreconditionError(f"Gravity must be a finite non-negative number, got {gravity!r}")

        network = list(network)
        if network and not isinstance(network[0], Pipe):
            network = build_network(network)

        self.pipes = network
        self.gravity = float(gravity)
        self.frame = 0
        self.perf_log = []
        self.start()

    def start(self):
        """Derive capacities, validate the network and build the components."""
        self.metrics = Metrics(self.pipes)
        self.metrics.start()
        self.overlap = OverlapResolver()
        self.injector = FluidInjector(self.metrics, self.overlap)
        self.targets = TargetResolver(self.pipes, self.metrics)
        self.pressure = PressureSolver(self.pipes, self.metrics, self.targets)
        self.mover = FluidMover(
            self.pipes, self.metrics, self.injector, self.overlap,
            self.pressure, self.targets, gravity=self.gravity,
        )
        for pipe in self.pipes:
            self.overlap.resolve(pipe)
            self.mover.sync(pipe)

    def add_fluid(self, volume: float, pipe: Optional[Union[Pipe, int]] = None,
                  vertex: Optional[Union[Vertex, dict, tuple]] = None) -> float:
        """
        Pour fluid into the network.

        Args:
            volume : Positive amount of fluid
            pipe   : Pipe (or its index). Omitted with vertex → the globally
                     highest vertex is used.
            vertex : End of `pipe` to pour at. Omitted → the pipe's upper end.

        Returns the volume accepted. Anything beyond the pipe's spare
        capacity is clamped off.
        """
        if not is_real(volume) or not math.isfinite(volume) or volume <= 0:
            raise PreconditionError(f"Volume must be a positive number, got {volume!r}")

        if pipe is None:
            if vertex is not None:
                raise PreconditionError("A vertex was given without the pipe it belongs to")
            pipe, vertex = self.metrics.highest_vertex()
        else:
            pipe = self._resolve_pipe(pipe)
            vertex = self.metrics.higher_vertex(pipe) if vertex is None else as_vertex(vertex)

        accepted = self.injector.add(pipe, vertex, float(volume))
        self.mover.sync(pipe)
        if accepted < volume:
            logger.warning(
                "Pipe %d had room for %.4f of %.4f; the rest was not added",
                pipe.index, accepted, volume
            )
        return accepted

    def _resolve_pipe(self, pipe: Union[Pipe, int]) -> Pipe:
        if isinstance(pipe, Pipe):
            index = pipe.index
        else:
            index = pipe
        if not isinstance(index, numbers.Integral) or not 0 <= index < len(self.pipes):
            raise PreconditionError(f"No pipe {index!r} in this network")
        if isinstance(pipe, Pipe) and self.pipes[int(index)] is not pipe:
            raise PreconditionError(f"Pipe {index} does not belong to this network")
        return self.pipes[int(index)]

    def update(self) -> dict:
        """
        Advance the simulation one step.

        Returns a metrics dict for logging and benchmarking.
        """
        t_start = time.perf_counter()
        counters = self.mover.update()
        self.frame += 1
        t_total = (time.perf_counter() - t_start) * 1000

        metrics = {
            "frame"         : self.frame,
            "total_ms"      : t_total,
            "fps"           : 1000.0 / t_total if t_total > 0 else 0,
            "fluid_total"   : self.total_volume(),
            "full_pipes"    : len(self.mover.full),
            "cached_groups" : len(self.targets.cache),
            **counters,
        }
        self.perf_log.append(metrics)
        return metrics

    def total_volume(self) -> float:
        return self.metrics.total_volume()

    def total_capacity(self) -> float:
        return float(sum(p.capacity for p in self.pipes))

    def print_status(self):
        """Pretty-print current simulation state."""
        volume = self.total_volume()
        capacity = self.total_capacity()
        wet = sum(1 for p in self.pipes if p.fluids)
        print(f"\n{'='*50}")
        print(f"  Frame: {self.frame}  |  Gravity: {self.gravity}")
        print(f"  Fluid     : {volume:.3f} / {capacity:.3f} ({100 * volume / capacity:.1f}%)")
        print(f"  Pipes     : {len(self.pipes)} total, {wet} wet, {len(self.mover.full)} full")
        print(f"  Cache     : {len(self.targets.cache)} groups")
        if self.perf_log:
            last = self.perf_log[-1]
            print(f"  Perf      : {last['total_ms']:.2f}ms/step ({last['fps']:.1f} FPS)")
        print(f"{'='*50}")
