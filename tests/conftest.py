import pytest

from drip import FluidNetworkSimulation, FluidSegment, network_from_edges
from drip.metrics import Metrics


@pytest.fixture
def chain():
    """Edges of n pipes stacked top to bottom along x = 0."""
    def _chain(n, length=10.0):
        return [((0.0, i * length), (0.0, (i + 1) * length)) for i in range(n)]
    return _chain


@pytest.fixture
def make_network():
    """Pipes with capacities derived, plus the Metrics that derived them."""
    def _make(edges):
        pipes = network_from_edges(edges)
        metrics = Metrics(pipes)
        metrics.start()
        return pipes, metrics
    return _make


@pytest.fixture
def make_sim():
    def _make(edges, gravity=0.1):
        return FluidNetworkSimulation(network_from_edges(edges), gravity=gravity)
    return _make


@pytest.fixture
def fill():
    def _fill(pipe, volume=None):
        volume = pipe.capacity if volume is None else volume
        pipe.fluids = [FluidSegment(0.0, volume)]
    return _fill


@pytest.fixture
def records():
    """External record form of a pipe list, the shape build_network reads."""
    def _records(pipes):
        return [
            {
                "va": {"x": p.va.x, "y": p.va.y},
                "vb": {"x": p.vb.x, "y": p.vb.y},
                "ca": list(p.ca) or None,
                "cb": list(p.cb) or None,
            }
            for p in pipes
        ]
    return _records
