"""Exception hierarchy for the render pipeline."""


class DesmosAnimatorError(Exception):
    """Base exception for all pipeline failures."""
    pass


class EvaluationError(DesmosAnimatorError):
    """A binding produced no usable numeric value."""
    pass


class EvaluationTimeout(EvaluationError, TimeoutError):
    """A binding did not produce a value before the deadline."""
    pass


class CaptureError(DesmosAnimatorError):
    """The host failed to produce a still image for a sample."""
    pass


class AssemblyError(DesmosAnimatorError):
    """Frames could not be decoded, composited or encoded."""
    pass


class RecorderUnavailableError(AssemblyError):
    """No encoder backs the requested recorder."""
    pass


class BootstrapError(DesmosAnimatorError):
    """Session bindings are missing or have an incompatible shape."""
    pass
