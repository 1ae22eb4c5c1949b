"""Domain models for captured photos."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class ProviderName(StrEnum):
    """Remote backends able to generate images."""

    GEMINI = "gemini"
    HUGGINGFACE = "huggingface"
    OPENAI = "openai"


class PhotoStatus(StrEnum):
    """Lifecycle states of a captured photo."""

    CAPTURING = "capturing"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ImageBlob:
    """Image bytes with their MIME type."""

    data: bytes
    mime_type: str

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "ImageBlob":
        """Wrap bytes, sniffing the MIME type when none is given."""
        return cls(data=data, mime_type=mime_type or detect_mime_type(data))


@dataclass(frozen=True)
class PhotoRecord:
    """A photo as published to consumers."""

    id: str
    prompt_used: str
    input_image: ImageBlob
    provider: ProviderName
    status: PhotoStatus
    created_at: datetime
    output_image: ImageBlob | None = None
    version: int = 0
    is_busy: bool = False


@dataclass(frozen=True)
class DurableImageEntry:
    """Durable blob-store record for one photo."""

    id: str
    input_image: ImageBlob
    created_at: datetime
    output_image: ImageBlob | None = None
    prompt_text: str | None = None
    provider: ProviderName | None = None

    @property
    def is_complete(self) -> bool:
        """Return whether both input and output images are stored."""
        return self.output_image is not None and bool(self.output_image.data)


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return "image/jpeg"
