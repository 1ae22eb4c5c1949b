"""Hugging Face Inference API image provider."""

from dataclasses import dataclass

import httpx

from gembooth.domain.photos import ImageBlob, ProviderName
from gembooth.errors import (
    CredentialMissingError,
    FatalProviderError,
    ProviderError,
    TransientProviderError,
    error_for_status,
)
from gembooth.services.providers import ImageProvider

HUGGING_FACE_MODEL = "stabilityai/stable-diffusion-xl-base-1.0"
HUGGING_FACE_BASE_URL = "https://api-inference.huggingface.co/models"


@dataclass
class HuggingFaceImageProvider(ImageProvider):
    """Text-to-image provider that needs a caller-supplied API token.

    The input image is not sent; the hosted model only accepts a prompt.
    """

    http_client: httpx.AsyncClient
    model: str = HUGGING_FACE_MODEL
    base_url: str = HUGGING_FACE_BASE_URL
    timeout_seconds: float = 130.0
    name: ProviderName = ProviderName.HUGGINGFACE

    @classmethod
    def create(
        cls, model: str = HUGGING_FACE_MODEL, base_url: str = HUGGING_FACE_BASE_URL
    ) -> "HuggingFaceImageProvider":
        """Create a provider with a managed httpx session."""
        return cls(
            http_client=httpx.AsyncClient(), model=model, base_url=base_url.rstrip("/")
        )

    async def generate(
        self,
        prompt: str,
        input_image: bytes | None = None,
        mime_type: str | None = None,
        credentials: str | None = None,
    ) -> ImageBlob:
        """Request one image for a prompt."""
        api_key = credentials.strip() if credentials else ""
        if not api_key:
            raise CredentialMissingError("Hugging Face API key is missing.", self.name)
        try:
            response = await self.http_client.post(
                f"{self.base_url}/{self.model}",
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "x-use-cache": "false",
                },
                json={"inputs": prompt},
                timeout=self.timeout_seconds,
            )
        except httpx.TransportError as exc:
            raise TransientProviderError(
                f"Hugging Face request failed: {exc}", self.name
            ) from exc

        if response.is_error:
            raise _error_from_response(response, self.name)
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            raise FatalProviderError(
                "Hugging Face API did not return an image.", self.name
            )
        return ImageBlob(data=response.content, mime_type=content_type)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error_from_response(response: httpx.Response, provider: str) -> ProviderError:
    """Classify an error response, honouring the model-loading hint."""
    try:
        payload = response.json()
    except ValueError:
        return error_for_status(
            response.status_code,
            f"Hugging Face API Error: {response.status_code} "
            f"{response.reason_phrase} - {response.text}",
            provider,
        )
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, str) and "is currently loading" in error:
        estimated = payload.get("estimated_time")
        retry_after = float(estimated) if isinstance(estimated, int | float) else None
        return TransientProviderError(
            f"Hugging Face model is loading: {error}", provider, retry_after=retry_after
        )
    detail = error or "Unknown error"
    return error_for_status(
        response.status_code,
        f"Hugging Face API Error: {response.reason_phrase} - {detail}",
        provider,
    )
