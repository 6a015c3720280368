import pytest

from drip import FluidSegment, NetworkError, Pipe, Vertex, build_network, network_from_edges
from drip.network import as_vertex


# --- Vertices ---


@pytest.mark.parametrize("point", [Vertex(1.0, 2.0), {"x": 1, "y": 2}, (1, 2), [1.0, 2.0]])
def test_as_vertex_accepts_common_shapes(point):
    assert as_vertex(point) == Vertex(1.0, 2.0)


@pytest.mark.parametrize("point", [{"x": 1}, (1, 2, 3), "ab", None, {"x": "one", "y": 2}])
def test_as_vertex_rejects_malformed_points(point):
    with pytest.raises(NetworkError):
        as_vertex(point)


# --- Pipes ---


def test_pipe_volume_sums_segments():
    pipe = Pipe(0, Vertex(0, 0), Vertex(0, 10), capacity=10.0)
    pipe.fluids = [FluidSegment(0.0, 2.0), FluidSegment(5.0, 3.0)]

    assert pipe.volume == pytest.approx(5.0)
    assert pipe.fluids[1].end == pytest.approx(8.0)


# --- Builders ---


def test_build_network_treats_missing_adjacency_as_boundary():
    pipes = build_network([
        {"va": {"x": 0, "y": 0}, "vb": {"x": 0, "y": 10}, "ca": None, "cb": [1]},
        {"va": {"x": 0, "y": 10}, "vb": {"x": 0, "y": 20}, "ca": [0]},
    ])

    assert [p.index for p in pipes] == [0, 1]
    assert pipes[0].ca == [] and pipes[0].cb == [1]
    assert pipes[1].ca == [0] and pipes[1].cb == []


def test_build_network_requires_both_vertices():
    with pytest.raises(NetworkError):
        build_network([{"va": {"x": 0, "y": 0}}])


def test_build_network_rejects_non_index_adjacency():
    with pytest.raises(NetworkError):
        build_network([{"va": (0, 0), "vb": (0, 10), "ca": ["left"]}])


def test_network_from_edges_derives_adjacency():
    # Y shape: two branches meet at (0, 10), one stem below
    pipes = network_from_edges([
        ((-10, 0), (0, 10)),
        ((10, 0), (0, 10)),
        ((0, 10), (0, 20)),
    ])

    assert pipes[0].ca == [] and pipes[0].cb == [1, 2]
    assert pipes[1].ca == [] and pipes[1].cb == [0, 2]
    assert pipes[2].ca == [0, 1] and pipes[2].cb == []


def test_network_from_edges_joins_nearly_equal_points():
    pipes = network_from_edges([((0, 0), (0, 10)), ((0, 10.0000000001), (0, 20))])

    assert pipes[0].cb == [1]
    assert pipes[1].ca == [0]


def test_build_network_reads_records(records):
    pipes = network_from_edges([((0, 0), (0, 10)), ((0, 10), (5, 20)), ((0, 10), (-5, 20))])

    rebuilt = build_network(records(pipes))

    for before, after in zip(pipes, rebuilt):
        assert (after.va, after.vb) == (before.va, before.vb)
        assert (after.ca, after.cb) == (before.ca, before.cb)
