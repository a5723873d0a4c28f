from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


class NotFoundException(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.NOT_FOUND, details: dict | None = None):
        super().__init__(404, message, error_code, details)


class ForbiddenException(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.PERMISSION_DENIED, details: dict | None = None):
        super().__init__(403, message, error_code, details)


class ConflictException(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFLICT, details: dict | None = None):
        super().__init__(409, message, error_code, details)


class ValidationException(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.VALIDATION_ERROR, details: dict | None = None):
        super().__init__(400, message, error_code, details)


class UnauthorizedException(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.UNAUTHORIZED, details: dict | None = None):
        super().__init__(401, message, error_code, details)
        self.headers = {"WWW-Authenticate": "Bearer"}
