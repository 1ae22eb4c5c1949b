"""Models for the durable metadata store."""

from pydantic import BaseModel, Field


class PromptHistoryEntry(BaseModel):
    """A previously used prompt with its short title."""

    id: str
    title: str
    prompt: str


class PersistedMetadata(BaseModel):
    """Durable subset of the booth state."""

    prompt_history: list[PromptHistoryEntry] = Field(default_factory=list)
    last_prompt: str = ""
    known_ids: list[str] = Field(default_factory=list)
