"""Error kinds raised by the progress service.

Routers translate these into HTTP statuses; the pure scoring / progression
modules never raise them for missing rows (absence is ``None`` or empty).
"""


class ProgressError(Exception):
    """Base class for progress service errors."""


class NotFoundError(ProgressError):
    """A student, topic or chapter does not exist."""


class ForbiddenError(ProgressError):
    """The topic is still locked for the calling student."""


class ValidationMismatchError(NotFoundError):
    """Submitted quiz ids do not all belong to the claimed topic."""


class MalformedStoredDataError(ProgressError):
    """A stored hasil_quiz payload could not be decoded."""
