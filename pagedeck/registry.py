"""Id-keyed table of uploaded source documents."""

from __future__ import annotations

from typing import Dict, Iterator

from .models import SourceDocument


class SourceRegistry:
    """Holds every loaded source in upload order.

    Sources are never removed individually; a page reference may be deleted
    while its source stays registered until :meth:`clear`.
    """

    def __init__(self) -> None:
        self._sources: Dict[str, SourceDocument] = {}

    def add(self, source: SourceDocument) -> None:
        if source.id in self._sources:
            raise ValueError(f'duplicate source id: {source.id}')
        self._sources[source.id] = source

    def get(self, source_id: str) -> SourceDocument:
        return self._sources[source_id]

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[SourceDocument]:
        return iter(list(self._sources.values()))

    def first(self) -> SourceDocument | None:
        return next(iter(self._sources.values()), None)

    def total_bytes(self) -> int:
        return sum(len(source.data) for source in self._sources.values())

    def as_mapping(self) -> Dict[str, SourceDocument]:
        return dict(self._sources)

    def clear(self) -> None:
        self._sources = {}
