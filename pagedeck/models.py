"""Workspace value types: uploaded sources and the page slots pointing into them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple


def new_source_id() -> str:
    return f"src_{uuid.uuid4().hex}"


def new_page_id() -> str:
    return f"pg_{uuid.uuid4().hex}"


def normalize_rotation(degrees: int) -> int:
    """Fold any multiple of 90 into 0/90/180/270."""
    if degrees % 90:
        raise ValueError(f'rotation must be a multiple of 90, got {degrees!r}')
    return degrees % 360


@dataclass(frozen=True)
class SourceDocument:
    id: str
    name: str
    size: int
    data: bytes = field(repr=False)
    page_count: int

    def to_dict(self) -> Dict[str, object]:
        return {
            'id': self.id,
            'name': self.name,
            'size': self.size,
            'page_count': self.page_count,
        }


@dataclass(frozen=True)
class PageReference:
    """One slot of the workspace sequence.

    Values are immutable; the workspace swaps in a new value with the same
    ``id`` when the rotation or preview changes, so a snapshot taken before a
    mutation keeps seeing the old state.
    """

    id: str
    source_id: str
    page_index: int
    rotation: int = 0
    preview: Optional[str] = None

    def rotated(self, delta: int) -> "PageReference":
        return replace(self, rotation=normalize_rotation(self.rotation + delta))

    def with_preview(self, handle: Optional[str]) -> "PageReference":
        return replace(self, preview=handle)

    def duplicate(self) -> "PageReference":
        return replace(self, id=new_page_id())

    def to_dict(self) -> Dict[str, object]:
        return {
            'id': self.id,
            'source_id': self.source_id,
            'page_index': self.page_index,
            'rotation': self.rotation,
            'preview': self.preview,
        }


@dataclass(frozen=True)
class WorkspaceSnapshot:
    """Point-in-time copy of the sequence plus the sources it may resolve against."""

    pages: Tuple[PageReference, ...]
    sources: Dict[str, SourceDocument]

    def __len__(self) -> int:
        return len(self.pages)
