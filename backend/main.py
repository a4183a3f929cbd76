import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import gold_search
from core.config import ALLOWED_CORS_ORIGINS
from services.gold_search.errors import (
    CompletionFailure,
    GoldSearchError,
    LocationNotFound,
    NetworkError,
)

# LOG_LEVEL=DEBUG logs every Overpass query and prompt size
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


tags_metadata = [
    {
        "name": "gold",
        "description": "Search for gold-bearing waterways around a French place, "
        "grounded on OpenStreetMap hydrography and BRGM geology.",
    },
]

app = FastAPI(
    title="Orpaillage API",
    description="API for finding gold panning spots on real French waterways",
    version="0.1.0",
    openapi_tags=tags_metadata,
)

# Credentials are only allowed with an explicit origin list
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_CORS_ORIGINS or ["*"],
    allow_credentials=bool(ALLOWED_CORS_ORIGINS),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(gold_search.router, prefix="/api")


@app.get("/")
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": app.title, "version": app.version}


# Exception handlers

ERROR_STATUS = {
    LocationNotFound: status.HTTP_404_NOT_FOUND,
    CompletionFailure: status.HTTP_502_BAD_GATEWAY,
    NetworkError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def gold_search_error_handler(request: Request, exc: GoldSearchError):
    status_code = next(
        code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)
    )
    log = logger.info if status_code == status.HTTP_404_NOT_FOUND else logger.error
    log(f"{request.method} {request.url.path}: {type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


for _error_type in ERROR_STATUS:
    app.add_exception_handler(_error_type, gold_search_error_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler_422(request: Request, exc: RequestValidationError):
    exc_str = f"{exc}".replace("\n", " ").replace("   ", " ")
    logger.warning(f"{request.method} {request.url.path}: {exc_str}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors()), "error": "RequestValidationError"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
