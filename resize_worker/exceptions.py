"""Resize worker exceptions."""


class ResizeWorkerError(Exception):
    """Base exception for resize worker errors."""
    pass


class ConfigurationError(ResizeWorkerError):
    """Startup configuration is missing or malformed. Fatal."""
    pass


class QueueError(ResizeWorkerError):
    """Queue service call (resolve, receive or delete) failed."""
    pass


class JobError(ResizeWorkerError):
    """A single job could not be completed."""
    pass


class JobDecodeError(JobError):
    """The job payload is not a valid operation."""
    pass


class FetchError(JobError):
    """Reading the source object failed."""
    pass


class TransformError(JobError):
    """The source could not be decoded, resized or re-encoded."""
    pass


class StoreError(JobError):
    """Writing the destination object failed."""
    pass
