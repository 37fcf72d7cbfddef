from __future__ import annotations


class LifeResetError(Exception):
    """Base class for errors raised by the challenge core."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LifeResetError):
    status_code = 404


class ValidationError(LifeResetError):
    status_code = 400


class ForbiddenError(LifeResetError):
    """Protected essential task mutation, or a day completed out of sequence."""

    status_code = 403


class StorageError(LifeResetError):
    """The persistence call failed; nothing was applied."""

    status_code = 503
