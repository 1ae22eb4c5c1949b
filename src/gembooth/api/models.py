"""Request and response models for the HTTP API."""

from pydantic import BaseModel

from gembooth.domain.metadata import PromptHistoryEntry
from gembooth.domain.photos import PhotoRecord, PhotoStatus, ProviderName
from gembooth.domain.state import BoothState


class PromptUpdate(BaseModel):
    """Body for setting the current prompt."""

    text: str


class PhotoView(BaseModel):
    """Published photo without image bytes."""

    id: str
    prompt: str
    provider: ProviderName
    status: PhotoStatus
    version: int
    is_busy: bool
    has_output: bool

    @classmethod
    def from_record(cls, record: PhotoRecord) -> "PhotoView":
        """Build a view from a photo record."""
        return cls(
            id=record.id,
            prompt=record.prompt_used,
            provider=record.provider,
            status=record.status,
            version=record.version,
            is_busy=record.is_busy,
            has_output=record.output_image is not None,
        )


class StateView(BaseModel):
    """Published booth state for UI consumers."""

    photos: list[PhotoView]
    prompt_history: list[PromptHistoryEntry]
    current_prompt: str
    error_message: str | None

    @classmethod
    def from_state(cls, state: BoothState) -> "StateView":
        """Build a view from a state snapshot."""
        return cls(
            photos=[PhotoView.from_record(photo) for photo in state.photos],
            prompt_history=list(state.prompt_history),
            current_prompt=state.current_prompt,
            error_message=state.error_message,
        )


class CaptureResult(BaseModel):
    """Result of a capture request."""

    photo: PhotoView | None
    photo_id: str
