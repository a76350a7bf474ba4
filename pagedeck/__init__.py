"""PageDeck: assemble new PDFs from pages of uploaded ones.

The workspace holds lightweight references to pages of immutable source
documents; nothing is copied until a merge or split is requested.
"""

from .assembly import SplitPage, merge, split_all
from .codec import PikepdfCodec, PypdfCodec, get_codec
from .controller import WorkspaceController
from .errors import (
    AnalysisError,
    AssemblyError,
    BusyError,
    EmptyWorkspace,
    LoadError,
    PageDeckError,
    PageNotFound,
    RangeError,
    RenderError,
)
from .models import PageReference, SourceDocument, WorkspaceSnapshot
from .settings import Settings
from .workspace import BatchPolicy, BatchResult, Upload, Workspace

__all__ = [
    "AnalysisError",
    "AssemblyError",
    "BatchPolicy",
    "BatchResult",
    "BusyError",
    "EmptyWorkspace",
    "LoadError",
    "PageDeckError",
    "PageNotFound",
    "PageReference",
    "PikepdfCodec",
    "PypdfCodec",
    "RangeError",
    "RenderError",
    "Settings",
    "SourceDocument",
    "SplitPage",
    "Upload",
    "Workspace",
    "WorkspaceController",
    "WorkspaceSnapshot",
    "get_codec",
    "merge",
    "split_all",
]
