"""
Failures an action can report back to its caller.

Anything that is not an ActionError is treated as a downstream failure
(database, identity provider) and reported with a generic message.
"""
from fastapi import status


class ActionError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(ActionError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class UnauthorizedError(ActionError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFoundError(ActionError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(ActionError):
    status_code = status.HTTP_400_BAD_REQUEST
