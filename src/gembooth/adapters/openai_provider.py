"""OpenAI image and text providers."""

import base64
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from gembooth.domain.photos import ImageBlob, ProviderName
from gembooth.errors import (
    ContentBlockedError,
    CredentialMissingError,
    FatalProviderError,
    NoResultError,
    ProviderError,
    TransientProviderError,
    error_for_status,
)
from gembooth.services.providers import ImageProvider, TextProvider

_BLOCKED_CODES = frozenset({"moderation_blocked", "content_policy_violation"})

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def create_openai_client(api_key: str | None) -> AsyncOpenAI | None:
    """Create a client that never retries on its own."""
    if not api_key:
        return None
    return AsyncOpenAI(api_key=api_key, max_retries=0)


@dataclass
class OpenAIImageProvider(ImageProvider):
    """Image provider backed by the OpenAI Images API."""

    client: AsyncOpenAI | None
    model: str = "gpt-image-1"
    name: ProviderName = ProviderName.OPENAI

    async def generate(
        self,
        prompt: str,
        input_image: bytes | None = None,
        mime_type: str | None = None,
        credentials: str | None = None,
    ) -> ImageBlob:
        """Edit the input image with the prompt, or generate from the prompt."""
        client = _require_client(self.client, self.name)
        try:
            if input_image:
                resolved_mime = mime_type or "image/jpeg"
                filename = f"input.{_EXTENSIONS.get(resolved_mime, 'jpg')}"
                response = await client.images.edit(
                    model=self.model,
                    image=(filename, input_image, resolved_mime),
                    prompt=prompt,
                )
            else:
                response = await client.images.generate(model=self.model, prompt=prompt)
        except openai.OpenAIError as exc:
            raise _translate_exception(exc, self.name) from exc

        item = response.data[0] if response.data else None
        if item is None or not item.b64_json:
            raise NoResultError("OpenAI returned no image data", self.name)
        return ImageBlob.from_bytes(base64.b64decode(item.b64_json))


@dataclass
class OpenAITextProvider(TextProvider):
    """Text provider backed by the OpenAI Responses API."""

    client: AsyncOpenAI | None
    model: str = "gpt-5-mini"
    name: ProviderName = ProviderName.OPENAI

    async def generate_text(self, prompt: str) -> str:
        """Return the trimmed text answer for a prompt."""
        client = _require_client(self.client, self.name)
        try:
            response = await client.responses.create(
                model=self.model, input=prompt, store=False
            )
        except openai.OpenAIError as exc:
            raise _translate_exception(exc, self.name) from exc
        output_text = response.output_text
        if not output_text:
            raise NoResultError("OpenAI returned an empty response", self.name)
        return output_text.strip()


def _require_client(client: AsyncOpenAI | None, provider: str) -> AsyncOpenAI:
    if client is None:
        raise CredentialMissingError("OpenAI API key is missing.", provider)
    return client


def _translate_exception(exc: openai.OpenAIError, provider: str) -> ProviderError:
    if isinstance(exc, openai.APIConnectionError):
        return TransientProviderError(f"OpenAI request failed: {exc}", provider)
    if isinstance(exc, openai.APIStatusError):
        if getattr(exc, "code", None) in _BLOCKED_CODES:
            return ContentBlockedError(
                f"Request blocked: {exc.message}", provider, reason=exc.code
            )
        return error_for_status(exc.status_code, f"OpenAI API error: {exc}", provider)
    return FatalProviderError(f"OpenAI request failed: {exc}", provider)
