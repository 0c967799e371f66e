"""FastAPI dependencies for the moderation API.

Provides dependency injection for:
- Moderation service
- Error translation to HTTP responses
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ModerationError, ModerationService


async def get_moderation_service(request: Request) -> ModerationService:
    """Get moderation service from app state.

    Raises:
        HTTPException: 503 when the database was not initialized at startup
    """
    service = getattr(request.app.state, "moderation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation service not available",
        )
    return service


ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]


def handle_moderation_error(error: ModerationError) -> HTTPException:
    """Convert moderation errors to HTTP exceptions.

    "Nothing to delete" (404) and "deletion failed mid-flight" (500) stay
    distinguishable through both the status code and the error code.
    """
    status_map = {
        "comment_not_found": status.HTTP_404_NOT_FOUND,
        "report_not_found": status.HTTP_404_NOT_FOUND,
        "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
        "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
        "cascade_failure": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = {"Retry-After": "1"} if error.retryable else None

    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
        headers=headers,
    )
