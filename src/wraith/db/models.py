"""Domain models for the wraith storage layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

# Scalar or nested mapping; lists are deliberately excluded so the JSON
# column always round-trips to the same shape.
MetadataValue = Union[str, int, float, bool, None, dict[str, "MetadataValue"]]
Metadata = dict[str, MetadataValue]


@dataclass
class DocumentChunk:
    content: str
    embedding: list[float]
    source: str
    chunk_index: int
    metadata: Metadata = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResult:
    """A ranked retrieval hit.

    Attributes:
        id: Row id of the stored chunk.
        content: Chunk text.
        metadata: Metadata stored with the chunk.
        source: Path of the originating document.
        similarity: Cosine similarity clamped to [0, 1]; 1 means identical direction.
    """

    id: int
    content: str
    metadata: Metadata
    source: str
    similarity: float


def validate_metadata(metadata: object, path: str = "metadata") -> None:
    """Raise TypeError if *metadata* is not a str-keyed mapping of allowed values."""
    if not isinstance(metadata, dict):
        raise TypeError(f"{path} must be a dict, got {type(metadata).__name__}")
    for key, value in metadata.items():
        if not isinstance(key, str):
            raise TypeError(f"{path} keys must be strings, got {key!r}")
        if isinstance(value, dict):
            validate_metadata(value, f"{path}.{key}")
        elif value is not None and not isinstance(value, (str, int, float, bool)):
            raise TypeError(
                f"{path}.{key} has unsupported type {type(value).__name__}"
            )
