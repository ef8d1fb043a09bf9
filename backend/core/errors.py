"""Error taxonomy for the scheduling core.

Every failure carries a stable ``kind`` and ``reason`` so that callers can
render an exact message. The HTTP layer maps each kind to a status code.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class SchedulingError(Exception):
    kind = 'error'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, reason: str, message: str | None = None, status_code: int | None = None):
        super().__init__(message or reason)
        self.reason = reason
        self.message = message or reason.replace('_', ' ').capitalize() + '.'
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {'error': self.reason, 'kind': self.kind, 'message': self.message}


class InvalidInput(SchedulingError):
    kind = 'invalid_input'
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(SchedulingError):
    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class InvalidState(SchedulingError):
    kind = 'invalid_state'
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(SchedulingError):
    kind = 'conflict'
    status_code = status.HTTP_409_CONFLICT


class StorageUnavailable(SchedulingError):
    """Transient storage failure. Never retried by the core."""

    kind = 'storage_unavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def database_unavailable() -> StorageUnavailable:
    return StorageUnavailable(
        'database_unavailable',
        'Database unavailable. Verify DATABASE_URL and database credentials.',
    )


async def scheduling_error_handler(_request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
