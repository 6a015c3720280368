"""Exceptions raised by the fluid network engine."""


class PreconditionError(ValueError):
    """A caller handed the engine something it cannot work with."""


class NetworkError(PreconditionError):
    """The supplied pipe network is malformed."""


class CacheInconsistencyError(RuntimeError):
    """The target cache broke one of its own invariants."""
