"""
Ошибки предметной области.

Сервисы бросают эти исключения, обработчик в app.main превращает их
в ответ вида {"error": kind, "detail": message} с нужным HTTP статусом.
"""
from fastapi import status


class AppError(Exception):
    """Базовая ошибка с машиночитаемым kind"""
    kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(AppError):
    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(AppError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class Internal(AppError):
    kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class TooManyRequests(AppError):
    kind = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
