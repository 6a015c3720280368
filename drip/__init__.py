"""
drip/ - Fluid Network Simulation Package
=========================================
Exports the interfaces the viewer, the CLI and the tests use.

Viewer imports: FluidNetworkSimulation → pipes, update(), add_fluid()
CLI imports:    generate_voronoi_network, setup_logging
"""

from .errors import CacheInconsistencyError, NetworkError, PreconditionError
from .generator import generate_voronoi_network
from .logging_config import setup_logging
from .network import FluidSegment, Pipe, Vertex, build_network, network_from_edges
from .pressure import RoutingDecision
from .simulation import FluidNetworkSimulation
from .targets import Group, Target

__all__ = [
    "FluidNetworkSimulation",
    "FluidSegment",
    "Pipe",
    "Vertex",
    "Target",
    "Group",
    "RoutingDecision",
    "build_network",
    "network_from_edges",
    "generate_voronoi_network",
    "setup_logging",
    "PreconditionError",
    "NetworkError",
    "CacheInconsistencyError",
]
