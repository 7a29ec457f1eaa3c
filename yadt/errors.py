"""
Exception hierarchy for the profile materializer.

Missing binary directories and binary name collisions are not errors and
have no exception type.
"""


class MaterializeError(Exception):
    """Base class for every fatal materialization failure."""


class ValidationError(MaterializeError):
    """A package reference or request list is malformed."""


class ResolutionError(MaterializeError):
    """
    A requested package could not be built.

    Attributes:
        requests: The batch of package references that failed
        timed_out: True when the build exceeded NIX_BUILD_TIMEOUT
    """

    def __init__(self, message, requests=(), timed_out=False):
        super().__init__(message)
        self.requests = list(requests)
        self.timed_out = timed_out


class ClosureError(MaterializeError):
    """A resolved output became invalid before its closure was computed."""

    def __init__(self, message, paths=()):
        super().__init__(message)
        self.paths = list(paths)


class ProfileError(MaterializeError):
    """The profile directory could not be populated."""
