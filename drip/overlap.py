"""
overlap.py - Segment Normalisation
===================================
After fluid moves or is added, a pipe's segment list can contain bodies
of fluid that touch or overlap. This collapses the list back to the
minimal sorted set of disjoint segments.

Merge rule for two segments a (earlier) and b (later):
  start  = a.position
  end    = max(a.end, b.end)
  gap    = max(0, b.position - a.end)      # only ever <= tolerance here
  volume = end - start - gap

So touching segments keep their summed volume and an overlapping region
is counted once.
"""

import logging

from .config import MINIMUM_FLUID_VOLUME, POINT_TOLERANCE
from .network import FluidSegment, Pipe

logger = logging.getLogger(__name__)


class OverlapResolver:

    def __init__(self, tolerance: float = POINT_TOLERANCE):
        self.tolerance = tolerance

    def resolve(self, pipe: Pipe):
        """Normalise `pipe.fluids` in place."""
        segments = [s for s in pipe.fluids if s.volume >= MINIMUM_FLUID_VOLUME]
        for segment in segments:
            self._clamp(pipe, segment)
        segments.sort(key=lambda s: s.position)

        merged = []
        for segment in segments:
            if merged and segment.position <= merged[-1].end + self.tolerance:
                last = merged[-1]
                end = max(last.end, segment.end)
                gap = max(0.0, segment.position - last.end)
                last.volume = min(end - last.position - gap, pipe.capacity - last.position)
            else:
                merged.append(FluidSegment(segment.position, segment.volume))

        pipe.fluids = merged

    def _clamp(self, pipe: Pipe, segment: FluidSegment):
        # Floating drift only; callers never ask for out of range segments
        if segment.volume > pipe.capacity:
            segment.volume = pipe.capacity
        if segment.position < 0.0:
            segment.position = 0.0
        elif segment.end > pipe.capacity:
            segment.position = pipe.capacity - segment.volume

    def is_normalised(self, pipe: Pipe) -> bool:
        """True if segments are sorted, disjoint and inside the pipe."""
        previous_end = None
        for segment in pipe.fluids:
            if segment.position < -self.tolerance or segment.end > pipe.capacity + self.tolerance:
                return False
            if previous_end is not None and segment.position <= previous_end + self.tolerance:
                return False
            previous_end = segment.end
        return True
