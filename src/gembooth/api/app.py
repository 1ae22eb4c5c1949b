"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from gembooth.api.models import CaptureResult, PhotoView, PromptUpdate, StateView
from gembooth.app_logging import configure_logging
from gembooth.containers import AppContainer
from gembooth.domain.metadata import PromptHistoryEntry
from gembooth.domain.photos import ProviderName
from gembooth.errors import (
    ContentBlockedError,
    CredentialMissingError,
    EmptyPromptError,
    FatalProviderError,
    GemboothError,
    NoResultError,
    NotFoundError,
    NotRehydratedError,
    PhotoBusyError,
    ProviderError,
    TransientProviderError,
)
from gembooth.services.photos import PhotoService

_ERROR_STATUS: tuple[tuple[type[GemboothError], int], ...] = (
    (EmptyPromptError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PhotoBusyError, status.HTTP_409_CONFLICT),
    (NotRehydratedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ContentBlockedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NoResultError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (CredentialMissingError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (TransientProviderError, status.HTTP_504_GATEWAY_TIMEOUT),
    (FatalProviderError, status.HTTP_502_BAD_GATEWAY),
)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await app.state.container.photo_service.rehydrate()
        logger.info("Booth state rehydrated")
        yield
        await app.state.container.photo_service.settle_titles()
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(GemboothError)
    async def booth_error_handler(request: Request, exc: GemboothError) -> JSONResponse:
        status_code = _status_for(exc)
        body: dict[str, object] = {"detail": str(exc), "kind": type(exc).__name__}
        if isinstance(exc, ProviderError):
            body["photo_id"] = exc.photo_id
            body["attempts"] = exc.attempts
        elif isinstance(exc, NotFoundError | PhotoBusyError):
            body["photo_id"] = exc.photo_id
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/state")
    async def get_state(request: Request) -> StateView:
        """Return the published booth state."""
        return StateView.from_state(_service(request).state)

    @app.put("/prompt")
    async def set_prompt(update: PromptUpdate, request: Request) -> dict[str, str]:
        """Set the prompt used by the next capture."""
        _service(request).set_prompt(update.text)
        return {"status": "ok"}

    @app.get("/prompts")
    async def prompt_history(request: Request) -> dict[str, list[PromptHistoryEntry]]:
        """Return prompt history, most recent first."""
        return {"prompts": _service(request).get_prompt_history()}

    @app.post("/photos")
    async def capture_photo(
        request: Request, provider: ProviderName | None = None
    ) -> CaptureResult:
        """Capture the raw image body and generate its output."""
        service = _service(request)
        body = await request.body()
        if not body:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Image body is empty"
            )
        content_type = request.headers.get("content-type", "")
        mime_type = content_type if content_type.startswith("image/") else None
        photo_id = await service.capture(body, mime_type=mime_type, provider=provider)
        record = service.state.find_photo(photo_id)
        return CaptureResult(
            photo_id=photo_id,
            photo=PhotoView.from_record(record) if record else None,
        )

    @app.get("/photos/{photo_id}")
    async def get_photo(photo_id: str, request: Request) -> PhotoView:
        """Return one published photo without image bytes."""
        return PhotoView.from_record(_service(request).get_photo(photo_id))

    @app.get("/photos/{photo_id}/{which}")
    async def photo_image(
        photo_id: str, which: Literal["input", "output"], request: Request
    ) -> Response:
        """Return stored image bytes for a photo."""
        image = _service(request).get_image(photo_id, which)
        return Response(content=image.data, media_type=image.mime_type)

    @app.post("/photos/{photo_id}/regenerate")
    async def regenerate_photo(photo_id: str, request: Request) -> PhotoView | None:
        """Generate a new output for an existing photo."""
        service = _service(request)
        await service.regenerate(photo_id)
        record = service.state.find_photo(photo_id)
        return PhotoView.from_record(record) if record else None

    @app.post("/photos/{photo_id}/cancel")
    async def cancel_photo(photo_id: str, request: Request) -> dict[str, bool]:
        """Ask an in-flight generation to stop."""
        return {"cancelled": _service(request).cancel(photo_id)}

    @app.delete("/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_photo(photo_id: str, request: Request) -> Response:
        """Delete a photo; unknown ids succeed."""
        _service(request).delete(photo_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.delete("/error", status_code=status.HTTP_204_NO_CONTENT)
    async def dismiss_error(request: Request) -> Response:
        """Clear the published error message."""
        _service(request).dismiss_error()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


def _service(request: Request) -> PhotoService:
    container: AppContainer = request.app.state.container
    return container.photo_service


def _status_for(exc: GemboothError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
