"""Domain errors. Each carries the HTTP status the API layer renders it with."""

from fastapi import status


class PosError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(PosError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PosError):
    status_code = status.HTTP_409_CONFLICT


class InvalidInputError(PosError):
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientStockError(PosError):
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientPaymentError(PosError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidCredentialsError(PosError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Invalid username or password"):
        super().__init__(detail)


class ForbiddenError(PosError):
    status_code = status.HTTP_403_FORBIDDEN
