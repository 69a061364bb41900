"""Error types raised by the mixing pipeline."""


class MixerError(Exception):
    """Base class for every failure this package raises on purpose."""


class EmptyInputError(MixerError):
    """No segments were given to mix."""


class DecodeError(MixerError):
    """A segment's bytes could not be interpreted as audio."""


class ResourceError(MixerError):
    """The audio output subsystem is unavailable or in an invalid state."""


class SynthesisError(MixerError):
    """A synthesis call failed or returned no audio."""
