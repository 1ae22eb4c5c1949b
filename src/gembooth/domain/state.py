"""Published in-memory booth state."""

from dataclasses import dataclass, replace

from gembooth.domain.metadata import PersistedMetadata, PromptHistoryEntry
from gembooth.domain.photos import PhotoRecord


@dataclass(frozen=True)
class BoothState:
    """Immutable snapshot of everything consumers can observe."""

    photos: tuple[PhotoRecord, ...] = ()
    prompt_history: tuple[PromptHistoryEntry, ...] = ()
    current_prompt: str = ""
    error_message: str | None = None
    is_rehydrated: bool = False

    def find_photo(self, photo_id: str) -> PhotoRecord | None:
        """Return a published photo by id, if present."""
        for photo in self.photos:
            if photo.id == photo_id:
                return photo
        return None

    def with_photo(self, photo: PhotoRecord) -> "BoothState":
        """Replace a photo in place, keeping list order."""
        photos = tuple(p if p.id != photo.id else photo for p in self.photos)
        return replace(self, photos=photos)

    def without_photo(self, photo_id: str) -> "BoothState":
        """Drop a photo from the published list."""
        photos = tuple(p for p in self.photos if p.id != photo_id)
        return replace(self, photos=photos)

    def has_prompt(self, prompt: str) -> bool:
        """Return whether a prompt is already in history."""
        return any(entry.prompt == prompt for entry in self.prompt_history)

    def to_metadata(self) -> PersistedMetadata:
        """Project the durable subset of this state."""
        return PersistedMetadata(
            prompt_history=list(self.prompt_history),
            last_prompt=self.current_prompt,
            known_ids=[photo.id for photo in self.photos],
        )
