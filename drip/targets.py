"""
targets.py - Where Can Trapped Fluid Go?
=========================================
When fluid is pressed against a run of full pipes it cannot flow by
gravity alone. It has to be routed through the full pipes to a pipe on
the far side that still has room: a TARGET.

Finding targets means walking the subgraph of full pipes. Doing that on
every query is wasteful because the full/non-full state changes slowly,
so connected components of full pipes are cached as GROUPS:

    Group(targets=[Target(pipe, vertex, highest_vertex), ...],
          full_pipes=[index, ...])

and repaired incrementally as pipes fill and drain:

  pipe_full(p)  : p was a target of 0, 1 or 2 cached groups
                    0 → nothing cached depends on it
                    1 → drop it from the targets, walk past it, merge
                    2 → it joins two clusters; merge both and absorb p
  pipe_empty(p) : evict the group that owns p (no partial repair)

Invariant: a pipe is a full_pipes member of at most one cached group.

The head (`highest_vertex`) of every target in a group is the highest
vertex of the group's connected full pipes, seeded with the vertex the
caller started from. It is the reference the pressure solver measures
driving head from.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from .errors import CacheInconsistencyError
from .metrics import Metrics
from .network import Pipe, Vertex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    pipe: int               # index of the pipe with room
    vertex: Vertex          # where fluid enters it
    highest_vertex: Vertex  # head of the full chain feeding it


@dataclass(eq=False)
class Group:
    """A cached component of full pipes and the targets on its boundary."""
    targets: List[Target] = field(default_factory=list)
    full_pipes: List[int] = field(default_factory=list)


class TargetResolver:
    """
    Cached reachability over full pipes.

    Usage:
        resolver = TargetResolver(pipes, metrics)
        targets = resolver.get_for_vertex(pipe, pipe.vb)
        resolver.pipe_full(other_pipe)     # reported by the mover
        resolver.pipe_empty(pipe)
    """

    def __init__(self, pipes: Sequence[Pipe], metrics: Metrics):
        self.pipes = pipes
        self.metrics = metrics
        self.cache: List[Group] = []
        self._owner: Dict[int, Group] = {}   # full pipe index -> cached group

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_for_vertex(self, pipe: Pipe, vertex: Vertex) -> List[Target]:
        """Targets reachable from the pipes meeting at `vertex`."""
        vertex_pipes = self.metrics.get_vertex_pipes(pipe, vertex)

        for candidate in vertex_pipes:
            group = self._owner.get(candidate.index)
            if group is not None:
                return list(group.targets)

        group = Group()
        for candidate in vertex_pipes:
            group = self.merge_groups(group, self.walk(candidate, vertex))

        if group.full_pipes:
            self._cache_group(group)
            logger.debug(
                "Cached group of %d full pipes with %d targets",
                len(group.full_pipes), len(group.targets)
            )
        return list(group.targets)

    def group_for(self, pipe: Pipe) -> Optional[Group]:
        """The cached group owning `pipe` as a full pipe, if any."""
        return self._owner.get(pipe.index)

    def walk(self, pipe: Pipe, vertex: Vertex, head: Optional[Vertex] = None) -> Group:
        """
        Explore from `pipe`, entered at `vertex`, through full pipes.

        Iterative depth-first search. Each (pipe, end) pair is entered at
        most once, which is what terminates the walk on cycles of full pipes.
        """
        head = vertex if head is None else head
        group = Group()
        visited = set()
        stack = [(pipe.index, vertex)]

        while stack:
            index, entry = stack.pop()
            current = self.pipes[index]
            key = (index, self.metrics.vertex_end(current, entry))
            if key in visited:
                continue
            visited.add(key)

            if self.metrics.has_capacity(current):
                group.targets.append(Target(index, entry, head))
                continue

            if index not in group.full_pipes:
                group.full_pipes.append(index)
            far = self.metrics.other_vertex(current, entry)
            if self.metrics.get_vertex_level(far) < self.metrics.get_vertex_level(head):
                head = far

            # Reversed so pipes are explored in adjacency order
            for connected in reversed(self.metrics.get_connected_pipes(current, far)):
                stack.append((connected.index, far))

        return self._with_head(group, head)

    def merge_groups(self, a: Group, b: Group) -> Group:
        """Union of two groups. Targets dedupe on (pipe, vertex position)."""
        full_pipes = list(a.full_pipes)
        for index in b.full_pipes:
            if index not in full_pipes:
                full_pipes.append(index)

        targets = []
        for target in a.targets + b.targets:
            if not any(self._same_target(target, kept) for kept in targets):
                targets.append(target)

        # Merged groups are always connected, so they share one head: the
        # highest of either head or of any full pipe's ends.
        merged = Group(targets=targets, full_pipes=full_pipes)
        candidates = [t.highest_vertex for t in targets]
        for index in full_pipes:
            candidates.extend((self.pipes[index].va, self.pipes[index].vb))
        head = self._highest(candidates)
        return self._with_head(merged, head) if head is not None else merged

    # ── State changes ─────────────────────────────────────────────────────────

    def pipe_full(self, pipe: Pipe):
        """`pipe` just reached capacity."""
        if pipe.index in self._owner:
            return

        groups = self._groups_targeting(pipe.index)
        if not groups:
            return

        if len(groups) == 2:
            merged = self.merge_groups(groups[0], groups[1])
            merged.targets = [t for t in merged.targets if t.pipe != pipe.index]
            if pipe.index not in merged.full_pipes:
                merged.full_pipes.append(pipe.index)
            self._uncache_group(groups[0])
            self._uncache_group(groups[1])
            self._cache_group(merged)
            logger.debug("Pipe %d joined two groups", pipe.index)
            return

        if len(groups) > 2:
            raise CacheInconsistencyError(
                f"Pipe {pipe.index} is a target of {len(groups)} groups"
            )

        group = groups[0]
        entries = [t for t in group.targets if t.pipe == pipe.index]
        remaining = Group(
            targets=[t for t in group.targets if t.pipe != pipe.index],
            full_pipes=list(group.full_pipes),
        )
        self._uncache_group(group)

        # Walk through the newly full pipe from where the group touched it
        for entry in entries:
            remaining = self.merge_groups(
                remaining, self.walk(pipe, entry.vertex, entry.highest_vertex)
            )
        self._cache_group(remaining)
        logger.debug("Pipe %d extended a group to %d full pipes",
                     pipe.index, len(remaining.full_pipes))

    def pipe_empty(self, pipe: Pipe):
        """`pipe` dropped below capacity; its group is no longer valid."""
        group = self._owner.get(pipe.index)
        if group is not None:
            self._uncache_group(group)
            logger.debug("Pipe %d drained, evicted group of %d", pipe.index, len(group.full_pipes))

    # ── Invariants ────────────────────────────────────────────────────────────

    def check_invariants(self):
        """Raise CacheInconsistencyError if the cache is not sound."""
        seen = {}
        for group in self.cache:
            for index in group.full_pipes:
                if index in seen and seen[index] is not group:
                    raise CacheInconsistencyError(f"Pipe {index} is in two cached groups")
                seen[index] = group
                if self.metrics.has_capacity(self.pipes[index]):
                    raise CacheInconsistencyError(f"Cached full pipe {index} has capacity")
                if self._owner.get(index) is not group:
                    raise CacheInconsistencyError(f"Owner map out of date for pipe {index}")
            for target in group.targets:
                if not self.metrics.has_capacity(self.pipes[target.pipe]):
                    raise CacheInconsistencyError(f"Cached target {target.pipe} is full")
        if len(seen) != len(self._owner):
            raise CacheInconsistencyError("Owner map lists pipes no cached group holds")

    # ── Internals ─────────────────────────────────────────────────────────────

    def _cache_group(self, group: Group):
        for index in group.full_pipes:
            owner = self._owner.get(index)
            if owner is not None and owner is not group:
                raise CacheInconsistencyError(f"Pipe {index} already belongs to a cached group")
        self.cache.append(group)
        for index in group.full_pipes:
            self._owner[index] = group

    def _uncache_group(self, group: Group):
        self.cache.remove(group)
        for index in group.full_pipes:
            if self._owner.get(index) is group:
                del self._owner[index]

    def _groups_targeting(self, index: int) -> List[Group]:
        return [g for g in self.cache if any(t.pipe == index for t in g.targets)]

    def _same_target(self, a: Target, b: Target) -> bool:
        return a.pipe == b.pipe and self.metrics.points_match(a.vertex, b.vertex)

    def _highest(self, vertices) -> Optional[Vertex]:
        best = None
        for vertex in vertices:
            if best is None or self.metrics.get_vertex_level(vertex) < self.metrics.get_vertex_level(best):
                best = vertex
        return best

    def _with_head(self, group: Group, head: Vertex) -> Group:
        group.targets = [replace(t, highest_vertex=head) for t in group.targets]
        return group
