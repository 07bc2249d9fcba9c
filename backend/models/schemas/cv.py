"""CV input: section-tagged, already-embedded text chunks."""

from pydantic import BaseModel, ConfigDict

from models.schemas.enums import Section


class CVChunk(BaseModel):
    """A single chunk produced by the external extraction/embedding pipeline."""
    model_config = ConfigDict(frozen=True)

    id: str
    section: Section
    text: str
    embedding: tuple[float, ...] | None = None  # None = not embedded yet
    order: int = 0  # position within the CV, used for tie-breaking


class CVDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    cv_id: str
    chunks: tuple[CVChunk, ...] = ()

    @property
    def embedded_chunks(self) -> tuple[CVChunk, ...]:
        return tuple(c for c in self.chunks if c.embedding is not None)

    def chunk(self, chunk_id: str) -> CVChunk | None:
        for c in self.chunks:
            if c.id == chunk_id:
                return c
        return None
