"""
metrics.py - Read-only Network Queries
=======================================
Geometry and topology questions every other component asks:
  - how high is a vertex?
  - how much room is left in a pipe?
  - which pipes meet at this end of that pipe?

Nothing here mutates fluid. The only write is the one-time pass in
`start()`, which derives each pipe's capacity from its length and
validates the geometry and adjacency it was handed.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import MINIMUM_FLUID_VOLUME, POINT_TOLERANCE
from .errors import NetworkError, PreconditionError
from .network import Pipe, Vertex

logger = logging.getLogger(__name__)

END_A = 0
END_B = 1


class Metrics:
    """
    Queries over a fixed pipe network.

    Usage:
        metrics = Metrics(pipes)
        metrics.start()                      # derive capacities, validate
        metrics.has_capacity(pipes[0])
    """

    def __init__(self, pipes: Sequence[Pipe], tolerance: float = POINT_TOLERANCE):
        self.pipes = pipes
        self.tolerance = tolerance

    # ── One-time derivation ───────────────────────────────────────────────────

    def start(self):
        """Derive capacities and validate the network. Raises NetworkError."""
        if not self.pipes:
            raise NetworkError("Network has no pipes")

        for position, pipe in enumerate(self.pipes):
            if pipe.index != position:
                raise NetworkError(f"Pipe at position {position} has index {pipe.index}")
            self._check_vertex(pipe, pipe.va)
            self._check_vertex(pipe, pipe.vb)

        coords = np.array(
            [[p.va.x, p.va.y, p.vb.x, p.vb.y] for p in self.pipes], dtype=np.float64
        )
        lengths = np.hypot(coords[:, 2] - coords[:, 0], coords[:, 3] - coords[:, 1])
        for pipe, length in zip(self.pipes, lengths):
            if length <= self.tolerance:
                raise NetworkError(f"Pipe {pipe.index} has zero length")
            pipe.capacity = float(length)

        for pipe in self.pipes:
            self._check_adjacency(pipe, pipe.va, pipe.ca, "ca")
            self._check_adjacency(pipe, pipe.vb, pipe.cb, "cb")

        logger.info(
            "Network ready: %d pipes, total capacity %.2f",
            len(self.pipes), float(lengths.sum())
        )

    def _check_vertex(self, pipe: Pipe, vertex: Vertex):
        if vertex is None:
            raise NetworkError(f"Pipe {pipe.index} is missing a vertex")
        if not (math.isfinite(vertex.x) and math.isfinite(vertex.y)):
            raise NetworkError(f"Pipe {pipe.index} has non-finite vertex {vertex}")

    def _check_adjacency(self, pipe: Pipe, vertex: Vertex, indices: List[int], name: str):
        for i in indices:
            if not 0 <= i < len(self.pipes):
                raise NetworkError(f"Pipe {pipe.index}: {name} index {i} out of range")
            if i == pipe.index:
                raise NetworkError(f"Pipe {pipe.index}: {name} lists the pipe itself")
            other = self.pipes[i]
            if self.points_match(other.va, vertex):
                back = other.ca
            elif self.points_match(other.vb, vertex):
                back = other.cb
            else:
                raise NetworkError(
                    f"Pipe {pipe.index}: {name} lists pipe {i}, which does not touch {vertex}"
                )
            if pipe.index not in back:
                logger.warning(
                    "Asymmetric adjacency: pipe %d lists %d at %s but not the reverse",
                    pipe.index, i, vertex
                )

    # ── Levels and capacity ───────────────────────────────────────────────────

    def get_vertex_level(self, vertex: Vertex) -> float:
        """Elevation proxy. Larger is lower."""
        return vertex.y

    def fluid_volume(self, pipe: Pipe) -> float:
        return pipe.volume

    def spare_capacity(self, pipe: Pipe) -> float:
        return max(0.0, pipe.capacity - self.fluid_volume(pipe))

    def has_capacity(self, pipe: Pipe) -> bool:
        # Sub-epsilon room counts as full, otherwise drift would keep a
        # pipe flickering across the full/non-full boundary.
        return pipe.capacity - self.fluid_volume(pipe) > MINIMUM_FLUID_VOLUME

    def total_volume(self) -> float:
        return float(sum(self.fluid_volume(p) for p in self.pipes))

    # ── Vertices ──────────────────────────────────────────────────────────────

    def points_match(self, a: Vertex, b: Vertex) -> bool:
        return abs(a.x - b.x) <= self.tolerance and abs(a.y - b.y) <= self.tolerance

    def vertex_end(self, pipe: Pipe, vertex: Vertex) -> int:
        """END_A or END_B; raises if the vertex is not on the pipe."""
        if self.points_match(pipe.va, vertex):
            return END_A
        if self.points_match(pipe.vb, vertex):
            return END_B
        raise PreconditionError(f"{vertex} is not an end of pipe {pipe.index}")

    def other_vertex(self, pipe: Pipe, vertex: Vertex) -> Vertex:
        return pipe.vb if self.vertex_end(pipe, vertex) == END_A else pipe.va

    def lower_vertex(self, pipe: Pipe) -> Optional[Vertex]:
        """The end fluid drains toward, or None for a level pipe."""
        level_a = self.get_vertex_level(pipe.va)
        level_b = self.get_vertex_level(pipe.vb)
        if level_a == level_b:
            return None
        return pipe.va if level_a > level_b else pipe.vb

    def higher_vertex(self, pipe: Pipe) -> Vertex:
        """The upper end; va for a level pipe."""
        if self.get_vertex_level(pipe.vb) < self.get_vertex_level(pipe.va):
            return pipe.vb
        return pipe.va

    def highest_vertex(self) -> Tuple[Pipe, Vertex]:
        """Globally highest vertex (smallest level), first pipe on ties."""
        best_pipe, best_vertex = None, None
        for pipe in self.pipes:
            for vertex in (pipe.va, pipe.vb):
                if best_vertex is None or self.get_vertex_level(vertex) < self.get_vertex_level(best_vertex):
                    best_pipe, best_vertex = pipe, vertex
        return best_pipe, best_vertex

    # ── Adjacency ─────────────────────────────────────────────────────────────

    def get_connected_pipes(self, pipe: Pipe, vertex: Vertex) -> List[Pipe]:
        """Other pipes sharing `vertex` with `pipe`."""
        indices = pipe.ca if self.vertex_end(pipe, vertex) == END_A else pipe.cb
        return [self.pipes[i] for i in indices if i != pipe.index]

    def get_vertex_pipes(self, pipe: Pipe, vertex: Vertex) -> List[Pipe]:
        """Every pipe touching `vertex`, `pipe` first."""
        return [pipe] + self.get_connected_pipes(pipe, vertex)
