"""Exception types raised by the workspace, assembly and adapter layers."""

from __future__ import annotations


class PageDeckError(RuntimeError):
    """Base class; ``status_code`` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(self, message: str = '') -> None:
        super().__init__(message)
        self.message = message


class LoadError(PageDeckError):
    """Uploaded bytes are empty or not something the codec can parse."""

    status_code = 400

    def __init__(self, message: str, *, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


class RangeError(PageDeckError, IndexError):
    """A reorder index fell outside the current sequence."""

    status_code = 400


class PageNotFound(PageDeckError):
    status_code = 404


class AssemblyError(PageDeckError):
    """Merge or split hit a broken reference; the cause is chained."""


class RenderError(PageDeckError):
    pass


class AnalysisError(PageDeckError):
    status_code = 502


class BusyError(PageDeckError):
    """Another long-running operation holds the workspace."""

    status_code = 409


class EmptyWorkspace(PageDeckError):
    status_code = 400
