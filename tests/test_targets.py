import pytest

from drip import CacheInconsistencyError, Group, Target, Vertex
from drip.targets import TargetResolver


@pytest.fixture
def resolver_for(make_network):
    def _make(edges):
        pipes, metrics = make_network(edges)
        return pipes, metrics, TargetResolver(pipes, metrics)
    return _make


def test_walk_stops_at_pipes_with_room(resolver_for, chain, fill):
    pipes, _, resolver = resolver_for(chain(3))
    fill(pipes[1])

    targets = resolver.get_for_vertex(pipes[0], pipes[0].vb)

    assert targets == [
        Target(0, Vertex(0, 10), Vertex(0, 10)),
        Target(2, Vertex(0, 20), Vertex(0, 10)),
    ]
    assert len(resolver.cache) == 1
    assert resolver.group_for(pipes[1]).full_pipes == [1]
    resolver.check_invariants()


def test_nothing_cached_without_full_pipes(resolver_for, chain):
    pipes, _, resolver = resolver_for(chain(2))

    targets = resolver.get_for_vertex(pipes[0], pipes[0].vb)

    assert {t.pipe for t in targets} == {0, 1}
    assert resolver.cache == []


def test_second_query_hits_the_cache(resolver_for, chain, fill):
    pipes, _, resolver = resolver_for(chain(3))
    fill(pipes[1])
    first = resolver.get_for_vertex(pipes[0], pipes[0].vb)
    group = resolver.cache[0]

    second = resolver.get_for_vertex(pipes[2], pipes[2].va)

    assert second == first
    assert resolver.cache == [group]


def test_head_is_the_highest_point_of_the_full_chain(resolver_for, chain, fill):
    pipes, _, resolver = resolver_for(chain(3))
    fill(pipes[0])
    fill(pipes[1])

    # Queried from the bottom, but the chain reaches up to y = 0
    targets = resolver.get_for_vertex(pipes[2], pipes[2].va)

    assert targets == [Target(2, Vertex(0, 20), Vertex(0, 0))]


def test_pipe_full_extends_a_single_group(resolver_for, chain, fill):
    pipes, _, resolver = resolver_for(chain(3))
    fill(pipes[1])
    resolver.get_for_vertex(pipes[0], pipes[0].vb)

    fill(pipes[2])
    resolver.pipe_full(pipes[2])

    assert len(resolver.cache) == 1
    group = resolver.cache[0]
    assert sorted(group.full_pipes) == [1, 2]
    assert [t.pipe for t in group.targets] == [0]
    assert resolver.group_for(pipes[2]) is group
    resolver.check_invariants()


def test_pipe_full_joins_two_groups(resolver_for, chain, fill):
    pipes, metrics, resolver = resolver_for(chain(5))
    fill(pipes[1])
    fill(pipes[3])
    resolver.get_for_vertex(pipes[0], pipes[0].vb)
    resolver.get_for_vertex(pipes[4], pipes[4].va)
    assert len(resolver.cache) == 2

    fill(pipes[2])
    resolver.pipe_full(pipes[2])

    assert len(resolver.cache) == 1
    group = resolver.cache[0]
    assert sorted(group.full_pipes) == [1, 2, 3]
    assert sorted(t.pipe for t in group.targets) == [0, 4]
    # Both sides now share the head of the joined chain
    assert {metrics.get_vertex_level(t.highest_vertex) for t in group.targets} == {10}
    resolver.check_invariants()


def test_pipe_full_without_a_group_changes_nothing(resolver_for, chain, fill):
    pipes, _, resolver = resolver_for(chain(2))
    fill(pipes[0])

    resolver.pipe_full(pipes[0])

    assert resolver.cache == []


def test_pipe_empty_evicts_the_whole_group(resolver_for, chain, fill):
    pipes, _, resolver = resolver_for(chain(4))
    fill(pipes[1])
    fill(pipes[2])
    resolver.get_for_vertex(pipes[0], pipes[0].vb)

    fill(pipes[1], 5.0)
    resolver.pipe_empty(pipes[1])

    assert resolver.cache == []
    assert resolver.group_for(pipes[2]) is None
    resolver.check_invariants()


def test_walk_terminates_on_a_cycle_of_full_pipes(resolver_for, fill):
    pipes, metrics, resolver = resolver_for([
        ((0, 0), (10, 0)),
        ((10, 0), (10, 10)),
        ((10, 10), (0, 10)),
        ((0, 10), (0, 0)),
        ((10, 10), (10, 20)),
    ])
    for pipe in pipes[:4]:
        fill(pipe)

    targets = resolver.get_for_vertex(pipes[4], pipes[4].va)

    assert len(targets) == 1
    assert targets[0].pipe == 4
    assert metrics.get_vertex_level(targets[0].highest_vertex) == 0
    assert sorted(resolver.cache[0].full_pipes) == [0, 1, 2, 3]


def test_merge_groups_dedupes_targets(resolver_for, chain):
    pipes, _, resolver = resolver_for(chain(2))
    a = Group(targets=[Target(1, Vertex(0, 10), Vertex(0, 10))], full_pipes=[0])
    b = Group(targets=[Target(1, Vertex(0, 10 + 1e-9), Vertex(0, 10))], full_pipes=[0])

    merged = resolver.merge_groups(a, b)

    assert merged.full_pipes == [0]
    assert len(merged.targets) == 1
    assert merged.targets[0].highest_vertex == Vertex(0, 0)


def test_check_invariants_catches_a_drained_cached_pipe(resolver_for, chain, fill):
    pipes, _, resolver = resolver_for(chain(3))
    fill(pipes[1])
    resolver.get_for_vertex(pipes[0], pipes[0].vb)

    pipes[1].fluids = []

    with pytest.raises(CacheInconsistencyError):
        resolver.check_invariants()

