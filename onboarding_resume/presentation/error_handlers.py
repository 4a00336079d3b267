import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from onboarding_resume.domain.errors import InfrastructureError

logger = logging.getLogger(__name__)


async def infrastructure_error_handler(request: Request, exc: InfrastructureError) -> JSONResponse:
    logger.error(
        "infrastructure failure",
        extra={"tracker_id": exc.tracker_id, "path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "service temporarily unavailable, please retry"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InfrastructureError, infrastructure_error_handler)
