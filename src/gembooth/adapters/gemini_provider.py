"""Gemini image and text providers using google-genai."""

from dataclasses import dataclass

import httpx
from google import genai
from google.genai import errors, types

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

_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_HARASSMENT",
)

_BLOCKED_FINISH_REASONS = frozenset(
    {
        "SAFETY",
        "PROHIBITED_CONTENT",
        "BLOCKLIST",
        "SPII",
        "IMAGE_SAFETY",
        "IMAGE_PROHIBITED_CONTENT",
    }
)


def create_gemini_client(api_key: str | None) -> genai.Client | None:
    """Create a Gemini client, or ``None`` when no key is configured."""
    if not api_key:
        return None
    return genai.Client(api_key=api_key)


@dataclass
class GeminiImageProvider(ImageProvider):
    """Image provider backed by Gemini's image-output models."""

    client: genai.Client | None
    model: str = "gemini-2.5-flash-image"
    name: ProviderName = ProviderName.GEMINI

    async def generate(
        self,
        prompt: str,
        input_image: bytes | None = None,
        mime_type: str | None = None,
        credentials: str | None = None,
    ) -> ImageBlob:
        """Send the input image and prompt, return the first inline image."""
        client = _require_client(self.client, self.name)
        parts: list[types.Part] = []
        if input_image:
            parts.append(
                types.Part.from_bytes(
                    data=input_image, mime_type=mime_type or "image/jpeg"
                )
            )
        parts.append(types.Part.from_text(text=prompt))
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except Exception as exc:
            raise _translate_exception(exc, self.name) from exc
        return parse_image_response(response, self.name)


@dataclass
class GeminiTextProvider(TextProvider):
    """Text provider used for short prompt titles."""

    client: genai.Client | None
    model: str = "gemini-2.5-flash"
    name: ProviderName = ProviderName.GEMINI

    async def generate_text(self, prompt: str) -> str:
        """Return the trimmed text answer for a prompt."""
        client = _require_client(self.client, self.name)
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    safety_settings=[
                        types.SafetySetting(category=category, threshold="BLOCK_NONE")
                        for category in _SAFETY_CATEGORIES
                    ]
                ),
            )
        except Exception as exc:
            raise _translate_exception(exc, self.name) from exc
        return parse_text_response(response, self.name)


def parse_image_response(response: object, provider: str) -> ImageBlob:
    """Normalize a generate_content response into image bytes or an error."""
    _raise_if_prompt_blocked(response, provider)
    candidates = getattr(response, "candidates", None) or []
    candidate = candidates[0] if candidates else None
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        data = getattr(inline_data, "data", None)
        if data:
            mime_type = getattr(inline_data, "mime_type", None) or "image/png"
            return ImageBlob(data=bytes(data), mime_type=mime_type)

    reason = _enum_name(getattr(candidate, "finish_reason", None))
    if reason in _BLOCKED_FINISH_REASONS:
        raise ContentBlockedError(
            f"Image generation blocked: {reason}", provider, reason=reason
        )
    if reason == "NO_IMAGE":
        raise NoResultError(
            "The model could not create an image for this prompt. "
            "Try rephrasing it.",
            provider,
        )
    if reason and reason != "STOP":
        raise NoResultError(f"Image generation failed: {reason}", provider)
    if not parts:
        raise NoResultError("No valid results in response", provider)
    raise NoResultError("No inline image data in response", provider)


def parse_text_response(response: object, provider: str) -> str:
    """Normalize a generate_content response into trimmed text."""
    text = getattr(response, "text", None)
    if not text:
        _raise_if_prompt_blocked(response, provider)
        raise NoResultError("No text in response", provider)
    return text.strip()


def _raise_if_prompt_blocked(response: object, provider: str) -> None:
    feedback = getattr(response, "prompt_feedback", None)
    block_reason = getattr(feedback, "block_reason", None)
    if block_reason:
        reason = _enum_name(block_reason)
        raise ContentBlockedError(
            f"Request blocked: {reason}", provider, reason=reason
        )


def _enum_name(value: object) -> str | None:
    if value is None:
        return None
    return getattr(value, "name", None) or str(value)


def _require_client(client: genai.Client | None, provider: str) -> genai.Client:
    if client is None:
        raise CredentialMissingError("Gemini API key is missing.", provider)
    return client


def _translate_exception(exc: Exception, provider: str) -> ProviderError:
    if isinstance(exc, errors.APIError):
        return error_for_status(exc.code, f"Gemini API error: {exc}", provider)
    if isinstance(exc, httpx.TransportError | TimeoutError | ConnectionError):
        return TransientProviderError(f"Gemini request failed: {exc}", provider)
    return FatalProviderError(f"Gemini request failed: {exc}", provider)
