"""Session controller tying the workspace to its collaborators.

The controller owns the single :class:`Workspace` of a session plus the
codec, renderer and analyzer injected into it. Long-running operations
(upload, merge, split, analyze) run under the workspace processing flag so
two of them never overlap.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .assembly import SplitPage, merge, split_all
from .codec import PdfCodec, get_codec
from .errors import AssemblyError, EmptyWorkspace, PageNotFound
from .insights import GeminiAnalyzer, InsightAdapter, TextAnalyzer
from .models import PageReference
from .settings import Settings
from .thumbnails import FitzRenderer, Renderer, ThumbnailCache
from .workspace import BatchPolicy, BatchResult, Upload, Workspace

logger = logging.getLogger(__name__)


class WorkspaceController:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        codec: Optional[PdfCodec] = None,
        renderer: Optional[Renderer] = None,
        analyzer: Optional[TextAnalyzer] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.codec = codec if codec is not None else get_codec(self.settings.codec)
        self.workspace = Workspace(self.codec, upload_workers=self.settings.upload_workers)
        self.thumbnails = ThumbnailCache(
            renderer if renderer is not None else FitzRenderer(),
            scale=self.settings.thumbnail_scale,
            max_workers=self.settings.upload_workers,
        )
        if analyzer is None:
            analyzer = GeminiAnalyzer(
                self.settings.gemini_api_key,
                model=self.settings.gemini_model,
                timeout_seconds=self.settings.gemini_timeout_seconds,
            )
        self.insights = InsightAdapter(analyzer, max_pages=self.settings.insight_max_pages)

    # ------------------------------------------------------------------
    # Long-running operations
    # ------------------------------------------------------------------
    def upload(self, uploads: Iterable[Upload], policy: Optional[BatchPolicy] = None) -> BatchResult:
        policy = BatchPolicy(policy or self.settings.batch_policy)
        with self.workspace.processing('upload'):
            result = self.workspace.add_sources(uploads, policy)
        logger.info(
            'upload: %d files added (%d pages), %d rejected',
            len(result.added), result.page_count, len(result.failures),
        )
        return result

    def merge(self) -> bytes:
        with self.workspace.processing('merge'):
            snapshot = self.workspace.snapshot()
            if not snapshot.pages:
                raise EmptyWorkspace('workspace has no pages')
            try:
                return merge(snapshot, self.codec)
            except AssemblyError:
                logger.exception('merge failed')
                raise

    def split(self) -> List[SplitPage]:
        with self.workspace.processing('split'):
            snapshot = self.workspace.snapshot()
            if not snapshot.pages:
                raise EmptyWorkspace('workspace has no pages')
            try:
                return split_all(snapshot, self.codec)
            except AssemblyError:
                logger.exception('split failed')
                raise

    def analyze(self, source_id: Optional[str] = None) -> str:
        if source_id is None:
            source = self.workspace.first_source()
            if source is None:
                raise EmptyWorkspace('no documents loaded')
        else:
            try:
                source = self.workspace.source(source_id)
            except KeyError:
                raise PageNotFound(f'unknown source: {source_id}') from None
        with self.workspace.processing('analyze'):
            text = self.insights.analyze(source)
            self.workspace.set_insights(text)
        return text

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------
    def thumbnail(self, page_id: str) -> bytes:
        page = self.workspace.page(page_id)
        if page is None:
            raise PageNotFound(f'unknown page: {page_id}')
        try:
            source = self.workspace.source(page.source_id)
        except KeyError:
            raise PageNotFound(f'page {page_id} has no source') from None
        image = self.thumbnails.get(page, source)
        self.workspace.attach_preview(page.id, f'{page.id}:{page.rotation}')
        return image

    def prefetch_thumbnails(self) -> int:
        snapshot = self.workspace.snapshot()
        return self.thumbnails.prefetch(snapshot.pages, snapshot.sources)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def remove_page(self, page_id: str) -> None:
        self.workspace.remove_page(page_id)
        self.thumbnails.discard(page_id)

    def rotate_page(self, page_id: str, delta: int = 90) -> Optional[PageReference]:
        return self.workspace.rotate_page(page_id, delta)

    def reorder(self, from_index: int, to_index: int) -> None:
        self.workspace.reorder(from_index, to_index)

    def duplicate_page(self, page_id: str) -> Optional[PageReference]:
        return self.workspace.duplicate_page(page_id)

    def clear(self) -> None:
        self.workspace.clear()
        self.thumbnails.clear()
