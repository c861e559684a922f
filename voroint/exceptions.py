"""Exceptions raised by voroint."""


class VoroIntError(Exception):
    """Base class for voroint errors."""


class ConfigurationError(VoroIntError, ValueError):
    """Invalid user configuration, e.g. a malformed group-boundary string."""


class GeometryError(VoroIntError, ValueError):
    """Frame geometry the tool cannot handle (non-cubic box, bad positions)."""


class SpawnError(VoroIntError, OSError):
    """The external tool could not be launched."""


class ToolRuntimeError(VoroIntError, RuntimeError):
    """The external tool exited with a non-zero status."""

    def __init__(self, message, returncode=None, stderr=""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ToolTimeoutError(ToolRuntimeError):
    """The external tool did not finish within the allowed time and was killed."""
