"""
injector.py - Adding Fluid to a Pipe
=====================================
Puts a volume of fluid into a pipe at one of its ends.

Policy when the pipe cannot take the whole volume: CLAMP. The volume is
capped at the pipe's spare capacity and the accepted amount is returned,
so the caller always knows exactly how much entered the pipe.

The new segment sits flush against the entry vertex. Fluid already
occupying that end is pushed along the pipe rather than overwritten.
"""

import logging
import math

from .config import MINIMUM_FLUID_VOLUME
from .errors import PreconditionError
from .metrics import END_A, Metrics
from .network import FluidSegment, Pipe, Vertex, is_real
from .overlap import OverlapResolver

logger = logging.getLogger(__name__)


class FluidInjector:

    def __init__(self, metrics: Metrics, overlap: OverlapResolver):
        self.metrics = metrics
        self.overlap = overlap

    def add(self, pipe: Pipe, vertex: Vertex, volume: float) -> float:
        """
        Add fluid at `vertex` end of `pipe`.

        Args:
            pipe   : Pipe to fill
            vertex : One of the pipe's two ends
            volume : Positive amount of fluid

        Returns the volume actually accepted (<= volume).
        """
        if not is_real(volume) or not math.isfinite(volume) or volume < 0:
            raise PreconditionError(f"Volume must be a finite non-negative number, got {volume!r}")
        end = self.metrics.vertex_end(pipe, vertex)

        accepted = min(float(volume), self.metrics.spare_capacity(pipe))
        if accepted < MINIMUM_FLUID_VOLUME:
            return 0.0
        if accepted < volume:
            logger.debug("Pipe %d clamped %.5f to %.5f", pipe.index, volume, accepted)

        if end == END_A:
            self._push_from_a(pipe, accepted)
            pipe.fluids.insert(0, FluidSegment(0.0, accepted))
        else:
            self._push_from_b(pipe, accepted)
            pipe.fluids.append(FluidSegment(pipe.capacity - accepted, accepted))

        self.overlap.resolve(pipe)
        return accepted

    # Existing fluid never needs to move further than the pipe allows:
    # the accepted volume plus everything already inside fits by construction.

    def _push_from_a(self, pipe: Pipe, volume: float):
        limit = volume
        for segment in sorted(pipe.fluids, key=lambda s: s.position):
            if segment.position < limit:
                segment.position = limit
            limit = segment.end

    def _push_from_b(self, pipe: Pipe, volume: float):
        limit = pipe.capacity - volume
        for segment in sorted(pipe.fluids, key=lambda s: s.position, reverse=True):
            if segment.end > limit:
                segment.position = limit - segment.volume
            limit = segment.position
