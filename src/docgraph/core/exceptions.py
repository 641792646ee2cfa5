"""Core exceptions for docgraph."""

from __future__ import annotations

from typing import Any


class DocGraphError(Exception):
    """Base exception for all docgraph errors."""


class StructuralPreconditionError(DocGraphError, TypeError):
    """Raised when an item is built over a raw value missing its required shape."""

    def __init__(self, kind: str, path: tuple[str, ...] = (), missing_key: str | None = None, detail: str | None = None) -> None:
        self.kind = kind
        self.path = path
        self.missing_key = missing_key
        if missing_key is not None:
            message = f"{kind} item at {list(path)} requires a {missing_key} object"
        else:
            message = f"Invalid raw value for {kind} item at {list(path)}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConversionUnsupportedError(DocGraphError, NotImplementedError):
    """Raised when an item cannot be converted to the requested kind."""

    def __init__(self, source_kind: str, target_kind: str) -> None:
        self.source_kind = source_kind
        self.target_kind = target_kind
        super().__init__(f"Conversion from {source_kind} to {target_kind} not yet implemented.")


class ParseFailure(DocGraphError, ValueError):
    """Raised when a file format adapter cannot interpret its input."""

    def __init__(self, format_name: str, reason: str | None = None) -> None:
        self.format_name = format_name
        self.reason = reason
        message = f"Failed to parse format: {format_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class DocumentNotFoundError(DocGraphError, KeyError):
    """Raised when a document store lookup misses."""

    def __init__(self, doc_id: str) -> None:
        self.doc_id = doc_id
        super().__init__(f"Document not found: {doc_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidIdentifierError(DocGraphError, ValueError):
    """Raised for a malformed document id."""

    def __init__(self, doc_id: str, reason: str) -> None:
        self.doc_id = doc_id
        self.reason = reason
        super().__init__(f"Invalid document id {doc_id!r}: {reason}")


class InvalidSelectorError(DocGraphError, ValueError):
    """Raised when a selector string cannot be parsed."""

    def __init__(self, selector: str, reason: str) -> None:
        self.selector = selector
        self.reason = reason
        super().__init__(f"Invalid selector {selector!r}: {reason}")


class ContextResolutionError(DocGraphError):
    """Reported when a relative selector has no context to resolve against."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(
            f"could not find context for selection {selector!r}; "
            "you must specify a document selector"
        )


class StoreConflictError(DocGraphError):
    """Raised when a put carries a stale revision."""

    def __init__(self, doc_id: str, expected_rev: str | None, actual_rev: str | None) -> None:
        self.doc_id = doc_id
        self.expected_rev = expected_rev
        self.actual_rev = actual_rev
        super().__init__(
            f"Document update conflict for {doc_id!r}: "
            f"got revision {expected_rev!r}, store has {actual_rev!r}"
        )


class PathNotFoundError(DocGraphError, KeyError):
    """Raised when a path does not resolve inside a document tree."""

    def __init__(self, path: tuple[Any, ...], doc_id: str | None = None) -> None:
        self.path = path
        self.doc_id = doc_id
        super().__init__(f"Path {list(path)} not found in document {doc_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownFormatError(DocGraphError, KeyError):
    """Raised when no file format adapter is registered under a name."""

    def __init__(self, format_name: str, available: list[str]) -> None:
        self.format_name = format_name
        self.available = available
        super().__init__(f"Unknown format {format_name!r}. Available: {', '.join(available)}")

    def __str__(self) -> str:
        return self.args[0]
