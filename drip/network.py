"""
network.py - Pipe Network Data Model
=====================================
The single source of truth handed to every engine component.

A network is an ordered list of Pipe objects. A pipe's position in that list
is its `index`, and the index is the only handle the engine uses to refer
to a pipe in caches and visited sets. The list never changes length once a
simulation has started.

Geometry:
  - Vertex (x, y), where y doubles as elevation: LARGER y is LOWER.
  - Pipe runs from va to vb. Fluid positions are measured from va.
  - ca / cb list the indices of the other pipes meeting at va / vb.

Two helpers build networks:
  - build_network(records)   : records shaped {va: {x, y}, vb, ca, cb}
  - network_from_edges(edges): bare coordinate pairs, adjacency derived
"""

import logging
import numbers
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import NetworkError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Vertex:
    """A point in the plane. Compare with Metrics.points_match, not ==."""
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass
class FluidSegment:
    """A continuous body of fluid inside one pipe."""
    position: float
    volume: float

    @property
    def end(self) -> float:
        return self.position + self.volume


@dataclass
class Pipe:
    index: int
    va: Vertex
    vb: Vertex
    ca: List[int] = field(default_factory=list)
    cb: List[int] = field(default_factory=list)
    capacity: float = 0.0      # derived by Metrics.start()
    fluids: List[FluidSegment] = field(default_factory=list)

    @property
    def volume(self) -> float:
        return sum(segment.volume for segment in self.fluids)

    def __repr__(self):
        return (
            f"Pipe({self.index}: ({self.va.x:g}, {self.va.y:g}) -> "
            f"({self.vb.x:g}, {self.vb.y:g}), "
            f"{self.volume:.3f}/{self.capacity:.3f})"
        )


def is_real(value) -> bool:
    """Any real number type (numpy scalars included) except bool."""
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def as_vertex(point) -> Vertex:
    """Accept a Vertex, an {x, y} mapping or an (x, y) pair."""
    if isinstance(point, Vertex):
        return point
    if isinstance(point, Mapping):
        try:
            return Vertex(float(point["x"]), float(point["y"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise NetworkError(f"Malformed vertex: {point!r}") from exc
    try:
        x, y = point
        return Vertex(float(x), float(y))
    except (TypeError, ValueError) as exc:
        raise NetworkError(f"Malformed vertex: {point!r}") from exc


def _as_indices(value, index: int, name: str) -> List[int]:
    if value is None:
        return []
    try:
        return [int(i) for i in value]
    except (TypeError, ValueError) as exc:
        raise NetworkError(f"Pipe {index}: '{name}' must be a list of indices, got {value!r}") from exc


def build_network(records: Iterable[Mapping]) -> List[Pipe]:
    """
    Convert external pipe records into engine pipes.

    Args:
        records : iterable of mappings with keys va, vb (vertices) and
                  ca, cb (adjacent pipe indices, None at the boundary)

    Returns the pipe list; adjacency is taken as given, not re-derived.
    """
    pipes = []
    for index, record in enumerate(records):
        try:
            va, vb = record["va"], record["vb"]
        except (KeyError, TypeError) as exc:
            raise NetworkError(f"Pipe {index}: record needs 'va' and 'vb'") from exc
        pipes.append(Pipe(
            index=index,
            va=as_vertex(va),
            vb=as_vertex(vb),
            ca=_as_indices(record.get("ca"), index, "ca"),
            cb=_as_indices(record.get("cb"), index, "cb"),
        ))
    logger.debug("Built network with %d pipes", len(pipes))
    return pipes


def network_from_edges(edges: Sequence[Tuple[Sequence[float], Sequence[float]]],
                       precision: Optional[int] = 9) -> List[Pipe]:
    """
    Build a network from bare (va, vb) coordinate pairs and derive adjacency.

    Endpoints are matched after rounding to `precision` decimal places, so
    points produced by separate geometry calculations still connect.
    """
    def key(vertex: Vertex):
        if precision is None:
            return vertex.as_tuple()
        return (round(vertex.x, precision), round(vertex.y, precision))

    pipes = [Pipe(index=i, va=as_vertex(a), vb=as_vertex(b)) for i, (a, b) in enumerate(edges)]

    # vertex key -> indices of pipes touching it
    meeting = {}
    for pipe in pipes:
        meeting.setdefault(key(pipe.va), []).append(pipe.index)
        meeting.setdefault(key(pipe.vb), []).append(pipe.index)

    for pipe in pipes:
        pipe.ca = [i for i in meeting[key(pipe.va)] if i != pipe.index]
        pipe.cb = [i for i in meeting[key(pipe.vb)] if i != pipe.index]

    return pipes

