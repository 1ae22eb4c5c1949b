"""Durable store interfaces and startup reconciliation."""

import logging
from dataclasses import dataclass
from typing import Protocol

from gembooth.domain.metadata import PersistedMetadata
from gembooth.domain.photos import DurableImageEntry, ImageBlob, ProviderName

METADATA_STORE_NAME = "gembooth-prompt-history"

_logger = logging.getLogger(__name__)


class MetadataRepository(Protocol):
    """Persistence interface for prompt history and known photo ids."""

    def load(self) -> PersistedMetadata | None:
        """Return stored metadata, if any was saved."""

    def save(self, metadata: PersistedMetadata) -> None:
        """Replace stored metadata."""


class ImageRepository(Protocol):
    """Persistence interface for per-photo image blobs."""

    def get(self, photo_id: str) -> DurableImageEntry | None:
        """Return the entry for a photo id, if present."""

    def list_ids(self) -> list[str]:
        """Return every stored photo id."""

    def save_input(
        self,
        photo_id: str,
        input_image: ImageBlob,
        prompt_text: str,
        provider: ProviderName,
    ) -> DurableImageEntry:
        """Create an entry holding the input image only."""

    def save_output(self, photo_id: str, output_image: ImageBlob) -> None:
        """Set or overwrite the output image of an existing entry."""

    def delete(self, photo_id: str) -> None:
        """Delete an entry. Deleting an absent id is a no-op."""


@dataclass(frozen=True)
class ReconciledState:
    """Durable state after orphaned entries have been discarded."""

    metadata: PersistedMetadata
    entries: list[DurableImageEntry]
    removed_ids: list[str]


def reconcile(
    metadata_repository: MetadataRepository, image_repository: ImageRepository
) -> ReconciledState:
    """Drop incomplete image entries and align known ids with what survives.

    An entry without an output image is the remnant of an interrupted
    generation, so it is deleted. Surviving entries are ordered by the stored
    id list, with unlisted ids after it, newest first.
    """
    metadata = metadata_repository.load() or PersistedMetadata()
    complete: dict[str, DurableImageEntry] = {}
    removed: list[str] = []
    for photo_id in image_repository.list_ids():
        entry = image_repository.get(photo_id)
        if entry is None:
            continue
        if entry.is_complete:
            complete[photo_id] = entry
            continue
        image_repository.delete(photo_id)
        removed.append(photo_id)

    ordered = [
        complete[pid] for pid in dict.fromkeys(metadata.known_ids) if pid in complete
    ]
    listed = {entry.id for entry in ordered}
    unlisted = sorted(
        (entry for pid, entry in complete.items() if pid not in listed),
        key=lambda entry: entry.created_at,
        reverse=True,
    )
    entries = ordered + unlisted
    reconciled = metadata.model_copy(
        update={"known_ids": [entry.id for entry in entries]}
    )
    metadata_repository.save(reconciled)
    if removed:
        _logger.info("Reconciliation removed %s orphaned entries", len(removed))
    return ReconciledState(metadata=reconciled, entries=entries, removed_ids=removed)
