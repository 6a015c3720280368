"""
generator.py - Random Voronoi Pipe Networks
============================================
Builds a pipe network from the edges of a Voronoi diagram of random
sites inside a width x height box.

  1. Scatter `num_sites` random sites in the box.
  2. Compute the Voronoi diagram (scipy.spatial.Voronoi).
  3. Keep finite ridges that lie inside the box.
  4. Drop ridges lying along the box border.
  5. Derive adjacency from shared endpoints.

Edges are returned as engine pipes, ready for FluidNetworkSimulation.
"""

import logging
from typing import List, Optional

import numpy as np
from scipy.spatial import Voronoi

from .config import BORDER_PRECISION, DEFAULT_HEIGHT, DEFAULT_SITES, DEFAULT_WIDTH, POINT_TOLERANCE
from .errors import PreconditionError
from .network import Pipe, network_from_edges

logger = logging.getLogger(__name__)


def _equal_to_precision(values, precision: int) -> bool:
    """True if every value matches the first to `precision` decimal places."""
    values = np.asarray(values, dtype=np.float64)
    return bool(np.all(np.abs(values - values[0]) < (10.0 ** -precision) / 2))


def _on_border(a: np.ndarray, b: np.ndarray, width: float, height: float,
               precision: int = BORDER_PRECISION) -> bool:
    return (
        _equal_to_precision([a[0], b[0], 0.0], precision)
        or _equal_to_precision([a[1], b[1], 0.0], precision)
        or _equal_to_precision([a[0], b[0], width], precision)
        or _equal_to_precision([a[1], b[1], height], precision)
    )


def _inside(point: np.ndarray, width: float, height: float) -> bool:
    return 0.0 <= point[0] <= width and 0.0 <= point[1] <= height


def generate_voronoi_network(num_sites: int = DEFAULT_SITES, width: float = DEFAULT_WIDTH,
                             height: float = DEFAULT_HEIGHT,
                             seed: Optional[int] = None) -> List[Pipe]:
    """
    Generate a random pipe network.

    Args:
        num_sites : Number of Voronoi sites (more sites, more pipes)
        width     : Box width
        height    : Box height (y grows downward, like the screen)
        seed      : For reproducible networks

    Returns the list of pipes with adjacency filled in.
    """
    if num_sites < 4:
        raise PreconditionError(f"Need at least 4 sites for a Voronoi network, got {num_sites}")
    if width <= 0 or height <= 0:
        raise PreconditionError(f"Box must have positive size, got {width} x {height}")

    rng = np.random.default_rng(seed)
    sites = rng.uniform(low=(0.0, 0.0), high=(width, height), size=(num_sites, 2))
    diagram = Voronoi(sites)

    edges = []
    for ridge in diagram.ridge_vertices:
        if -1 in ridge:
            continue  # infinite ridge
        a, b = diagram.vertices[ridge[0]], diagram.vertices[ridge[1]]
        if not (_inside(a, width, height) and _inside(b, width, height)):
            continue
        if np.hypot(*(b - a)) <= POINT_TOLERANCE:
            continue
        if _on_border(a, b, width, height):
            continue
        edges.append(((float(a[0]), float(a[1])), (float(b[0]), float(b[1]))))

    if not edges:
        raise PreconditionError("Voronoi diagram produced no usable pipes; try more sites")

    pipes = network_from_edges(edges)
    logger.info("Generated Voronoi network: %d sites, %d pipes", num_sites, len(pipes))
    return pipes
