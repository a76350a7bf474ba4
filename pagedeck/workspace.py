"""The page workspace: an ordered sequence of page references plus their sources.

All state changes go through the methods below. Sequence mutations are
serialized by one re-entrant lock; codec parsing for uploads happens before
the lock is taken so a slow parse never blocks rotate/reorder/delete.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .codec import PdfCodec
from .errors import BusyError, LoadError, RangeError
from .models import (
    PageReference,
    SourceDocument,
    WorkspaceSnapshot,
    new_page_id,
    new_source_id,
    normalize_rotation,
)
from .registry import SourceRegistry

logger = logging.getLogger(__name__)


class BatchPolicy(str, enum.Enum):
    SKIP = 'skip'    # bad files are reported, the rest of the batch still loads
    ABORT = 'abort'  # any bad file means nothing from the batch is added


@dataclass
class Upload:
    data: bytes
    name: str
    size: Optional[int] = None


@dataclass
class BatchResult:
    added: List[SourceDocument] = field(default_factory=list)
    failures: List[LoadError] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return sum(source.page_count for source in self.added)


class Workspace:
    def __init__(self, codec: PdfCodec, *, upload_workers: int = 4) -> None:
        self.codec = codec
        self.upload_workers = max(1, upload_workers)
        self._lock = threading.RLock()
        self._pages: List[PageReference] = []
        self._registry = SourceRegistry()
        self._processing: Optional[str] = None
        self._insights: Optional[str] = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def pages(self) -> Tuple[PageReference, ...]:
        with self._lock:
            return tuple(self._pages)

    @property
    def sources(self) -> Tuple[SourceDocument, ...]:
        with self._lock:
            return tuple(self._registry)

    @property
    def is_processing(self) -> bool:
        return self._processing is not None

    @property
    def insights(self) -> Optional[str]:
        return self._insights

    def __len__(self) -> int:
        return len(self._pages)

    def page(self, page_id: str) -> Optional[PageReference]:
        with self._lock:
            index = self._index_of(page_id)
            return None if index is None else self._pages[index]

    def source(self, source_id: str) -> SourceDocument:
        with self._lock:
            return self._registry.get(source_id)

    def first_source(self) -> Optional[SourceDocument]:
        with self._lock:
            return self._registry.first()

    def snapshot(self) -> WorkspaceSnapshot:
        with self._lock:
            return WorkspaceSnapshot(pages=tuple(self._pages), sources=self._registry.as_mapping())

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    def _parse(self, data: bytes, name: str, size: Optional[int]) -> SourceDocument:
        try:
            handle = self.codec.load(data)
            page_count = self.codec.page_count(handle)
        except LoadError as exc:
            raise LoadError(f'{name}: {exc.message}', name=name) from exc
        data = bytes(data)
        return SourceDocument(
            id=new_source_id(),
            name=name,
            size=len(data) if size is None else int(size),
            data=data,
            page_count=page_count,
        )

    def _append_block(self, source: SourceDocument) -> None:
        self._registry.add(source)
        self._pages.extend(
            PageReference(id=new_page_id(), source_id=source.id, page_index=i)
            for i in range(source.page_count)
        )
        logger.info('added %s (%d pages) as %s', source.name, source.page_count, source.id)

    def add_source(self, data: bytes, name: str, size: Optional[int] = None) -> SourceDocument:
        source = self._parse(data, name, size)
        with self._lock:
            self._append_block(source)
        return source

    def add_sources(self, uploads: Iterable[Upload], policy: BatchPolicy = BatchPolicy.SKIP) -> BatchResult:
        """Parse a batch concurrently, then append each file's pages in upload order."""
        uploads = list(uploads)
        result = BatchResult()
        if not uploads:
            return result
        parsed: List[SourceDocument] = []
        workers = min(self.upload_workers, len(uploads))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._parse, u.data, u.name, u.size) for u in uploads]
            for future in futures:
                try:
                    parsed.append(future.result())
                except LoadError as exc:
                    logger.warning('upload rejected: %s', exc)
                    result.failures.append(exc)
        if result.failures and BatchPolicy(policy) is BatchPolicy.ABORT:
            raise result.failures[0]
        with self._lock:
            for source in parsed:
                self._append_block(source)
        result.added = parsed
        return result

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def _index_of(self, page_id: str) -> Optional[int]:
        for index, page in enumerate(self._pages):
            if page.id == page_id:
                return index
        return None

    def remove_page(self, page_id: str) -> None:
        with self._lock:
            index = self._index_of(page_id)
            if index is not None:
                del self._pages[index]

    def rotate_page(self, page_id: str, delta: int = 90) -> Optional[PageReference]:
        normalize_rotation(delta)
        with self._lock:
            index = self._index_of(page_id)
            if index is None:
                return None
            self._pages[index] = self._pages[index].rotated(delta)
            return self._pages[index]

    def reorder(self, from_index: int, to_index: int) -> None:
        with self._lock:
            length = len(self._pages)
            for label, value in (('from_index', from_index), ('to_index', to_index)):
                if not 0 <= value < length:
                    raise RangeError(f'{label} {value} out of range [0, {length})')
            if from_index == to_index:
                return
            page = self._pages.pop(from_index)
            self._pages.insert(to_index, page)

    def duplicate_page(self, page_id: str) -> Optional[PageReference]:
        with self._lock:
            index = self._index_of(page_id)
            if index is None:
                return None
            copy = self._pages[index].duplicate()
            self._pages.insert(index + 1, copy)
            return copy

    def attach_preview(self, page_id: str, handle: Optional[str]) -> None:
        with self._lock:
            index = self._index_of(page_id)
            if index is not None:
                self._pages[index] = self._pages[index].with_preview(handle)

    def set_insights(self, text: Optional[str]) -> None:
        self._insights = text

    def clear(self) -> None:
        with self._lock:
            self._pages = []
            self._registry.clear()
            self._insights = None
        logger.info('workspace cleared')

    # ------------------------------------------------------------------
    # Long-running operations
    # ------------------------------------------------------------------
    @contextmanager
    def processing(self, label: str) -> Iterator[None]:
        with self._lock:
            if self._processing is not None:
                raise BusyError(f'cannot start {label}: {self._processing} in progress')
            self._processing = label
        try:
            yield
        finally:
            with self._lock:
                self._processing = None

    def to_dict(self) -> Dict[str, object]:
        with self._lock:
            return {
                'sources': [source.to_dict() for source in self._registry],
                'pages': [page.to_dict() for page in self._pages],
                'is_processing': self._processing is not None,
                'processing': self._processing,
                'insights': self._insights,
            }
