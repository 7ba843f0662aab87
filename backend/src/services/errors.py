"""Exceptions raised by the feedback and icon services.

Client-fault errors subclass ``ValueError`` so the API's ValueError handler
turns them into 400 responses. Everything else is a server fault.
"""


class ServiceError(Exception):
    """Base class for service errors."""

    pass


class InvalidInputError(ServiceError, ValueError):
    """Client input failed a precondition."""

    pass


class FeedbackValidationError(InvalidInputError):
    """A feedback submission is missing a required field."""

    pass


class IconNotFoundError(InvalidInputError):
    """No icon is registered under the requested id."""

    pass


class IconAlreadyExistsError(InvalidInputError):
    """An icon with the requested id is already registered."""

    pass


class NoActiveIconError(ServiceError):
    """The registry has no active icon."""

    pass


class UploadFatalError(ServiceError):
    """The media store cannot be used at all."""

    pass


class PerFileUploadError(ServiceError):
    """A single attachment could not be hosted."""

    pass


class StoreError(ServiceError):
    """Reading from or writing to the record store failed."""

    pass
