"""Exceptions raised by the code generation pipeline."""


class BuildError(RuntimeError):
    """Raised for fatal configuration or filesystem failures that abort the build."""
