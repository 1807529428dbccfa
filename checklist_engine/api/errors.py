from fastapi import Request, status
from fastapi.responses import JSONResponse

from checklist_engine.core.errors import (
    ActivationBlocked,
    CycleDetected,
    FolderNotEmpty,
    GeneratorUnavailable,
    IOTimeout,
    NotAFolder,
    NotFound,
    RepositoryError,
    StaleVersion,
    StructuralDecodeFailure,
    TemplateEngineError,
)

_STATUS_BY_ERROR: dict[type[TemplateEngineError], int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    CycleDetected: status.HTTP_409_CONFLICT,
    NotAFolder: status.HTTP_409_CONFLICT,
    FolderNotEmpty: status.HTTP_409_CONFLICT,
    StaleVersion: status.HTTP_409_CONFLICT,
    ActivationBlocked: status.HTTP_409_CONFLICT,
    StructuralDecodeFailure: status.HTTP_422_UNPROCESSABLE_ENTITY,
    GeneratorUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    IOTimeout: status.HTTP_504_GATEWAY_TIMEOUT,
    RepositoryError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: TemplateEngineError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def engine_error_handler(request: Request, exc: TemplateEngineError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": exc.to_dict()})
