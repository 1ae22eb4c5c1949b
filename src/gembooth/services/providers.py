"""Provider interfaces for image and text generation."""

from typing import Protocol

from gembooth.domain.photos import ImageBlob, ProviderName


class ImageProvider(Protocol):
    """Uniform contract for one image-generation backend.

    Implementations perform exactly one outbound call per invocation and
    translate every failure into a ``ProviderError`` subclass. Retrying is
    left to the caller.
    """

    name: ProviderName

    async def generate(
        self,
        prompt: str,
        input_image: bytes | None = None,
        mime_type: str | None = None,
        credentials: str | None = None,
    ) -> ImageBlob:
        """Return generated image bytes for a prompt and optional input."""


class TextProvider(Protocol):
    """Contract for short text generation such as prompt titles."""

    name: ProviderName

    async def generate_text(self, prompt: str) -> str:
        """Return generated text for a prompt."""


def title_request(prompt: str) -> str:
    """Build the request asking for a short prompt title."""
    return (
        "Generate a very short, two or three-word title for the following "
        "prompt. Return only the title and nothing else. "
        f'Prompt: "{prompt}"'
    )


def clean_title(raw: str) -> str:
    """Strip quotes and whitespace from a generated title."""
    return raw.replace('"', "").strip()
