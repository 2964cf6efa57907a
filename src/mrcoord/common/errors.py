class MRCoordError(Exception):
    """Base class for coordinator errors."""


class ConfigurationError(MRCoordError, ValueError):
    """The job cannot be started with the given inputs."""


class InvalidTaskReport(MRCoordError, ValueError):
    """A worker reported a task the scheduler does not know about."""


class InvalidTaskAssignment(MRCoordError, ValueError):
    """The coordinator sent a reply the worker cannot interpret."""
