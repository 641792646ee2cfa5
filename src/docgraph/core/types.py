"""Value types shared across the store, graph and format layers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PutResult(BaseModel):
    """Outcome of a document store write."""

    model_config = ConfigDict(frozen=True)

    id: str
    rev: str
    ok: bool = True


class ExportResult(BaseModel):
    """A serialized blob produced by a file format adapter."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    type: str = Field(description="MIME type of the blob")
    extension: str = Field(description="File extension without the dot")

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding)


class EdgeSignature(BaseModel):
    """Edges sharing the same classes and the same endpoint classes per direction."""

    edge_classes: list[str]
    source_classes: list[str] = Field(default_factory=list)
    target_classes: list[str] = Field(default_factory=list)
    undirected_classes: list[str] = Field(default_factory=list)
    count: int = 0


class ClassSchema(BaseModel):
    """Class counts over the selected items, plus edge signatures.

    `set_classes` counts taggable items that are neither nodes nor edges.
    """

    node_classes: dict[str, int] = Field(default_factory=dict)
    edge_classes: dict[str, int] = Field(default_factory=dict)
    set_classes: dict[str, int] = Field(default_factory=dict)
    edge_sets: list[EdgeSignature] = Field(default_factory=list)
