from fastapi import HTTPException

from fantasy_survivor.services.errors import (
    LockedError, NotFoundError, ScoringError, ScoringValidationError,
)


def to_http_exception(e: ScoringError) -> HTTPException:
    """Map a service-layer error onto the status code the API promises."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, LockedError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ScoringValidationError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))
