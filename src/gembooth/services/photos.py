"""Photo lifecycle: capture, generation, regeneration and deletion."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Literal
from uuid import uuid4

from gembooth.domain.metadata import PromptHistoryEntry
from gembooth.domain.photos import (
    DurableImageEntry,
    ImageBlob,
    PhotoRecord,
    PhotoStatus,
    ProviderName,
)
from gembooth.domain.state import BoothState
from gembooth.errors import (
    EmptyPromptError,
    FatalProviderError,
    NotFoundError,
    NotRehydratedError,
    PhotoBusyError,
    ProviderError,
)
from gembooth.services.dispatcher import ConcurrencyDispatcher, OperationClass
from gembooth.services.executor import ResilientExecutor
from gembooth.services.providers import (
    ImageProvider,
    TextProvider,
    clean_title,
    title_request,
)
from gembooth.services.state import StateStore
from gembooth.services.storage import ImageRepository, MetadataRepository, reconcile

_logger = logging.getLogger(__name__)


@dataclass
class PhotoService:
    """Sole writer of photo records and their durable entries.

    Every operation except ``rehydrate`` requires rehydration to have
    completed, so durable state is never touched before reconciliation.
    """

    store: StateStore
    metadata_repository: MetadataRepository
    image_repository: ImageRepository
    dispatcher: ConcurrencyDispatcher
    executor: ResilientExecutor
    image_providers: dict[ProviderName, ImageProvider]
    text_provider: TextProvider | None = None
    default_provider: ProviderName = ProviderName.GEMINI
    credentials: dict[ProviderName, str | None] = field(default_factory=dict)
    _cancel_events: dict[str, asyncio.Event] = field(
        default_factory=dict, init=False, repr=False
    )
    _titles_in_flight: set[str] = field(default_factory=set, init=False, repr=False)
    _title_tasks: set["asyncio.Task[None]"] = field(
        default_factory=set, init=False, repr=False
    )

    @property
    def state(self) -> BoothState:
        """Return the published snapshot."""
        return self.store.state

    async def rehydrate(self) -> None:
        """Reconcile durable storage and publish state derived from it."""
        if self.store.state.is_rehydrated:
            return
        reconciled = reconcile(self.metadata_repository, self.image_repository)
        metadata = reconciled.metadata
        photos = tuple(self._record_from_entry(entry) for entry in reconciled.entries)
        self.store.update(
            lambda _: BoothState(
                photos=photos,
                prompt_history=tuple(metadata.prompt_history),
                current_prompt=metadata.last_prompt,
                is_rehydrated=True,
            )
        )
        _logger.info(
            "Rehydrated %s photos, %s prompts",
            len(photos),
            len(metadata.prompt_history),
        )

    def set_prompt(self, text: str) -> None:
        """Set the prompt used by the next capture."""
        self._require_rehydrated()
        self.store.update(lambda state: replace(state, current_prompt=text))
        self._persist_metadata()

    def get_prompt_history(self) -> list[PromptHistoryEntry]:
        """Return prompt history, most recent first."""
        self._require_rehydrated()
        return list(self.store.state.prompt_history)

    async def capture(
        self,
        image_bytes: bytes,
        mime_type: str | None = None,
        provider: ProviderName | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Store an input image, generate its output and return the photo id.

        A failed generation removes every trace of the photo before the
        classified error is raised. A cancelled one is removed silently. A title
        for a new prompt is requested in the background.
        """
        self._require_rehydrated()
        prompt = self.store.state.current_prompt
        if not prompt.strip():
            _logger.warning("Capture rejected: prompt is empty")
            raise EmptyPromptError("Enter a prompt before capturing a photo")
        if not image_bytes:
            raise ValueError("Image data is empty")
        provider_name = provider or self.default_provider
        self._image_provider(provider_name)

        photo_id = uuid4().hex
        input_image = ImageBlob.from_bytes(image_bytes, mime_type)
        record = PhotoRecord(
            id=photo_id,
            prompt_used=prompt,
            input_image=input_image,
            provider=provider_name,
            status=PhotoStatus.CAPTURING,
            created_at=datetime.now(tz=UTC),
            is_busy=True,
        )
        self.store.update(lambda state: replace(state, photos=(record, *state.photos)))
        try:
            self.image_repository.save_input(
                photo_id, input_image, prompt, provider_name
            )
        except Exception:
            self.store.update(lambda state: state.without_photo(photo_id))
            raise
        self.store.update(
            lambda state: state.with_photo(replace(record, status=PhotoStatus.PENDING))
        )
        self._persist_metadata()
        _logger.info("Photo %s pending (provider=%s)", photo_id, provider_name)

        if self._needs_title(prompt):
            self._start_title(prompt)

        cancel = cancel_event or asyncio.Event()
        self._cancel_events[photo_id] = cancel
        try:
            output = await self._generate(
                photo_id, prompt, input_image, provider_name, cancel
            )
            if output is not None and self.store.state.find_photo(photo_id):
                self.image_repository.save_output(photo_id, output)
        except asyncio.CancelledError:
            self._roll_back(photo_id)
            raise
        except Exception as exc:
            self._roll_back(photo_id)
            if isinstance(exc, ProviderError):
                exc.photo_id = photo_id
            self._publish_error(exc)
            _logger.warning("Photo %s failed: %s", photo_id, exc, exc_info=exc)
            raise
        finally:
            self._release_cancel_event(photo_id, cancel)

        if output is None:
            _logger.info("Photo %s cancelled", photo_id)
            self._roll_back(photo_id)
        elif self.store.state.find_photo(photo_id) is None:
            _logger.info("Photo %s deleted during generation", photo_id)
            self.image_repository.delete(photo_id)
        else:
            self.store.update(
                lambda state: _mark_ready(state, photo_id, output, bump_version=False)
            )
            _logger.info("Photo %s ready", photo_id)
        return photo_id

    async def regenerate(
        self, photo_id: str, cancel_event: asyncio.Event | None = None
    ) -> None:
        """Generate a new output for a stored input image.

        Reads from the durable store rather than published state. A failure
        leaves the existing output untouched.
        """
        self._require_rehydrated()
        entry = self.image_repository.get(photo_id)
        if entry is None:
            raise NotFoundError(photo_id)
        if photo_id in self._cancel_events:
            raise PhotoBusyError(photo_id)
        prompt = entry.prompt_text or self.store.state.current_prompt
        if not prompt.strip():
            raise EmptyPromptError("Enter a prompt before regenerating a photo")
        provider_name = entry.provider or self.default_provider

        self._set_busy(photo_id, True)
        cancel = cancel_event or asyncio.Event()
        self._cancel_events[photo_id] = cancel
        try:
            output = await self._generate(
                photo_id, prompt, entry.input_image, provider_name, cancel
            )
        except ProviderError as exc:
            exc.photo_id = photo_id
            self._publish_error(exc)
            _logger.warning("Regeneration of %s failed: %s", photo_id, exc)
            raise
        finally:
            self._release_cancel_event(photo_id, cancel)
            self._set_busy(photo_id, False)

        if output is None:
            _logger.info("Regeneration of %s cancelled", photo_id)
            return
        if self.image_repository.get(photo_id) is None:
            _logger.info("Photo %s deleted during regeneration", photo_id)
            return
        self.image_repository.save_output(photo_id, output)
        self.store.update(
            lambda state: _mark_ready(state, photo_id, output, bump_version=True)
        )
        _logger.info("Photo %s regenerated", photo_id)

    def delete(self, photo_id: str) -> None:
        """Remove a photo and its durable entry. Unknown ids are ignored."""
        self._require_rehydrated()
        self.cancel(photo_id)
        self.store.update(lambda state: state.without_photo(photo_id))
        self.image_repository.delete(photo_id)
        self._persist_metadata()

    def cancel(self, photo_id: str) -> bool:
        """Ask an in-flight generation to stop; return whether one was found."""
        event = self._cancel_events.get(photo_id)
        if event is None:
            return False
        event.set()
        return True

    async def settle_titles(self) -> None:
        """Wait for outstanding title requests."""
        if self._title_tasks:
            await asyncio.gather(*self._title_tasks, return_exceptions=True)

    def dismiss_error(self) -> None:
        """Clear the published error message."""
        self.store.update(lambda state: replace(state, error_message=None))

    def get_photo(self, photo_id: str) -> PhotoRecord:
        """Return a published photo."""
        self._require_rehydrated()
        photo = self.store.state.find_photo(photo_id)
        if photo is None:
            raise NotFoundError(photo_id)
        return photo

    def get_image(
        self, photo_id: str, which: Literal["input", "output"]
    ) -> ImageBlob:
        """Return a stored image for a photo."""
        self._require_rehydrated()
        entry = self.image_repository.get(photo_id)
        if entry is None:
            raise NotFoundError(photo_id)
        image = entry.input_image if which == "input" else entry.output_image
        if image is None:
            raise NotFoundError(photo_id)
        return image

    async def _generate(
        self,
        photo_id: str,
        prompt: str,
        input_image: ImageBlob,
        provider_name: ProviderName,
        cancel_event: asyncio.Event,
    ) -> ImageBlob | None:
        provider = self._image_provider(provider_name)
        credentials = self.credentials.get(provider_name)
        return await self.dispatcher.submit(
            OperationClass.IMAGE,
            lambda: self.executor.execute(
                lambda: provider.generate(
                    prompt, input_image.data, input_image.mime_type, credentials
                ),
                cancel_event=cancel_event,
                label=f"image:{provider_name}:{photo_id}",
            ),
            cancel_event=cancel_event,
        )

    def _start_title(self, prompt: str) -> None:
        self._titles_in_flight.add(prompt)
        task = asyncio.create_task(self._request_title(prompt))
        self._title_tasks.add(task)

        def finished(done: "asyncio.Task[None]") -> None:
            self._titles_in_flight.discard(prompt)
            self._title_tasks.discard(done)

        task.add_done_callback(finished)

    def _needs_title(self, prompt: str) -> bool:
        return (
            self.text_provider is not None
            and not self.store.state.has_prompt(prompt)
            and prompt not in self._titles_in_flight
        )

    async def _request_title(self, prompt: str) -> None:
        """Add a titled history entry for a new prompt, best effort."""
        text_provider = self.text_provider
        if text_provider is None:
            return
        try:
            raw_title = await self.dispatcher.submit(
                OperationClass.TEXT,
                lambda: self.executor.execute(
                    lambda: text_provider.generate_text(title_request(prompt)),
                    label="title",
                ),
            )
        except Exception:
            _logger.exception("Failed to generate prompt title")
            return

        title = clean_title(raw_title or "")
        if not title:
            return

        def add_entry(state: BoothState) -> BoothState:
            if state.has_prompt(prompt):
                return state
            entry = PromptHistoryEntry(id=uuid4().hex, title=title, prompt=prompt)
            return replace(state, prompt_history=(entry, *state.prompt_history))

        self.store.update(add_entry)
        self._persist_metadata()

    def _image_provider(self, provider_name: ProviderName) -> ImageProvider:
        provider = self.image_providers.get(provider_name)
        if provider is None:
            raise FatalProviderError(
                f"Provider {provider_name} is not configured", provider=provider_name
            )
        return provider

    def _release_cancel_event(self, photo_id: str, event: asyncio.Event) -> None:
        if self._cancel_events.get(photo_id) is event:
            del self._cancel_events[photo_id]

    def _roll_back(self, photo_id: str) -> None:
        self.store.update(lambda state: state.without_photo(photo_id))
        self.image_repository.delete(photo_id)
        self._persist_metadata()

    def _set_busy(self, photo_id: str, is_busy: bool) -> None:
        def reducer(state: BoothState) -> BoothState:
            photo = state.find_photo(photo_id)
            if photo is None:
                return state
            return state.with_photo(replace(photo, is_busy=is_busy))

        self.store.update(reducer)

    def _publish_error(self, exc: Exception) -> None:
        message = str(exc) or exc.__class__.__name__
        self.store.update(lambda state: replace(state, error_message=message))

    def _persist_metadata(self) -> None:
        self.metadata_repository.save(self.store.state.to_metadata())

    def _require_rehydrated(self) -> None:
        if not self.store.state.is_rehydrated:
            raise NotRehydratedError("Rehydration must complete first")

    def _record_from_entry(self, entry: DurableImageEntry) -> PhotoRecord:
        return PhotoRecord(
            id=entry.id,
            prompt_used=entry.prompt_text or "",
            input_image=entry.input_image,
            output_image=entry.output_image,
            provider=entry.provider or self.default_provider,
            status=PhotoStatus.READY,
            created_at=entry.created_at,
        )


def _mark_ready(
    state: BoothState, photo_id: str, output: ImageBlob, *, bump_version: bool
) -> BoothState:
    photo = state.find_photo(photo_id)
    if photo is None:
        return state
    version = photo.version + 1 if bump_version else photo.version
    return state.with_photo(
        replace(
            photo,
            status=PhotoStatus.READY,
            output_image=output,
            version=version,
            is_busy=False,
        )
    )

