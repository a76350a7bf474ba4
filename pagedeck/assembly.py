"""Turn a workspace snapshot into output PDF bytes.

Two modes: ``merge`` builds one document in sequence order, ``split_all``
builds one single-page document per slot. Each referenced source is parsed at
most once per call through a :class:`ParseCache` that lives only as long as
that call.
"""

from __future__ import annotations

import io
import logging
import time
import zipfile
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from .codec import PdfCodec
from .errors import AssemblyError
from .models import PageReference, SourceDocument, WorkspaceSnapshot

logger = logging.getLogger(__name__)


def split_filename(number: int) -> str:
    return f'page_{number}.pdf'


@dataclass(frozen=True)
class SplitPage:
    number: int
    page_id: str
    data: bytes

    @property
    def filename(self) -> str:
        return split_filename(self.number)


class ParseCache:
    """Parsed source handles for a single assembly call."""

    def __init__(self, codec: PdfCodec, sources: Mapping[str, SourceDocument]) -> None:
        self.codec = codec
        self.sources = sources
        self._handles: Dict[str, Any] = {}
        self.loads = 0

    def get(self, source_id: str) -> Any:
        handle = self._handles.get(source_id)
        if handle is None:
            source = self.sources[source_id]
            handle = self.codec.load(source.data)
            self.loads += 1
            self._handles[source_id] = handle
        return handle

    def clear(self) -> None:
        self._handles.clear()


def _check_output(data: bytes) -> bytes:
    if not data or not data.startswith(b'%PDF'):
        raise AssemblyError('codec produced non-PDF data')
    return data


def _place(codec: PdfCodec, cache: ParseCache, ref: PageReference, dest: Any, slot: int) -> None:
    try:
        src = cache.get(ref.source_id)
        page = codec.copy_page(src, ref.page_index, dest)
        if ref.rotation:
            codec.set_rotation(page, ref.rotation)
        codec.add_page(dest, page)
    except Exception as exc:
        raise AssemblyError(
            f'slot {slot} ({ref.id} -> {ref.source_id}:{ref.page_index}) could not be assembled: {exc}'
        ) from exc


def merge(snapshot: WorkspaceSnapshot, codec: PdfCodec) -> bytes:
    if not snapshot.pages:
        raise AssemblyError('workspace has no pages')
    start = time.time()
    cache = ParseCache(codec, snapshot.sources)
    try:
        dest = codec.new_document()
        for slot, ref in enumerate(snapshot.pages, 1):
            _place(codec, cache, ref, dest, slot)
        try:
            data = codec.save(dest)
        except Exception as exc:
            raise AssemblyError(f'could not serialize merged document: {exc}') from exc
        _check_output(data)
    finally:
        cache.clear()
    logger.info(
        'merge: assembled %d pages from %d sources in %.2fs',
        len(snapshot.pages), cache.loads, time.time() - start,
    )
    return data


def split_all(snapshot: WorkspaceSnapshot, codec: PdfCodec) -> List[SplitPage]:
    """One single-page document per slot, rotation applied as in ``merge``."""
    if not snapshot.pages:
        raise AssemblyError('workspace has no pages')
    start = time.time()
    cache = ParseCache(codec, snapshot.sources)
    outputs: List[SplitPage] = []
    try:
        for slot, ref in enumerate(snapshot.pages, 1):
            dest = codec.new_document()
            _place(codec, cache, ref, dest, slot)
            try:
                data = codec.save(dest)
            except Exception as exc:
                raise AssemblyError(f'could not serialize page {slot}: {exc}') from exc
            outputs.append(SplitPage(number=slot, page_id=ref.id, data=_check_output(data)))
    finally:
        cache.clear()
    logger.info(
        'split: produced %d documents from %d sources in %.2fs',
        len(outputs), cache.loads, time.time() - start,
    )
    return outputs


def bundle_pages(pages: List[SplitPage]) -> bytes:
    """Zip split output so it can travel as a single download."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for page in pages:
            archive.writestr(page.filename, page.data)
    return buf.getvalue()
