"""Error taxonomy shared by the service routes and the storage layer."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class GalleryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(GalleryError):
    status_code = 400


class UnauthorizedError(GalleryError):
    status_code = 401


class NotFoundError(GalleryError):
    status_code = 404


class InternalError(GalleryError):
    status_code = 500


class StorageError(Exception):
    """Raised by the storage layer when the backing service call fails."""


class MetadataStoreError(StorageError):
    pass


class BlobStoreError(StorageError):
    pass


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def gallery_error_handler(request: Request, exc: GalleryError):
    return error_response(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return error_response(400, "Invalid request")


def register_error_handlers(app: FastAPI) -> None:
    """Render every error as {"error": message}."""
    app.add_exception_handler(GalleryError, gallery_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
