"""Page previews.

Rendering goes through a ``Renderer`` (PyMuPDF by default). Previews are
cached per page reference and rotation; a failed render yields a grey
placeholder instead of an error so the workspace view never breaks on a bad
page.
"""

from __future__ import annotations

import io
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, Mapping, Protocol, Tuple

from PIL import Image

from .errors import RenderError
from .models import PageReference, SourceDocument

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = (184, 238)
PLACEHOLDER_COLOR = (240, 240, 240)


class Renderer(Protocol):
    def render(self, data: bytes, page_index: int, scale: float) -> bytes: ...


class FitzRenderer:
    """Render pages to PNG with PyMuPDF."""

    # MuPDF contexts are not thread-safe
    _lock = threading.Lock()

    def __init__(self) -> None:
        import fitz
        self._fitz = fitz

    def render(self, data: bytes, page_index: int, scale: float) -> bytes:
        fitz = self._fitz
        with self._lock:
            try:
                doc = fitz.open(stream=data, filetype='pdf')
            except Exception as exc:
                raise RenderError(f'cannot open document: {exc}') from exc
            try:
                page = doc.load_page(page_index)
                pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
                return pix.tobytes('png')
            except Exception as exc:
                raise RenderError(f'cannot render page {page_index}: {exc}') from exc
            finally:
                doc.close()


def placeholder_image() -> bytes:
    img = Image.new('RGB', PLACEHOLDER_SIZE, color=PLACEHOLDER_COLOR)
    buf = io.BytesIO()
    img.save(buf, 'PNG')
    return buf.getvalue()


def rotate_image(png: bytes, rotation: int) -> bytes:
    if not rotation:
        return png
    with Image.open(io.BytesIO(png)) as img:
        # PIL turns counter-clockwise, PDF /Rotate is clockwise
        turned = img.rotate(-rotation, expand=True)
        buf = io.BytesIO()
        turned.save(buf, 'PNG')
    return buf.getvalue()


class ThumbnailCache:
    def __init__(self, renderer: Renderer, *, scale: float = 0.3, max_workers: int = 4) -> None:
        self.renderer = renderer
        self.scale = scale
        self.max_workers = max(1, max_workers)
        self._lock = threading.Lock()
        self._images: Dict[Tuple[str, int], bytes] = {}
        self.hits = 0
        self.misses = 0

    def __contains__(self, page: PageReference) -> bool:
        return (page.id, page.rotation) in self._images

    def _lookup(self, key: Tuple[str, int]) -> bytes | None:
        with self._lock:
            return self._images.get(key)

    def _store(self, key: Tuple[str, int], image: bytes) -> None:
        with self._lock:
            self._images[key] = image

    def get(self, page: PageReference, source: SourceDocument) -> bytes:
        key = (page.id, page.rotation)
        with self._lock:
            cached = self._images.get(key)
            if cached is None:
                self.misses += 1
            else:
                self.hits += 1
        if cached is not None:
            return cached
        base = self._lookup((page.id, 0))
        if base is None:
            try:
                base = self.renderer.render(source.data, page.page_index, self.scale)
            except RenderError as exc:
                logger.warning('thumbnail for %s failed, using placeholder: %s', page.id, exc)
                return rotate_image(placeholder_image(), page.rotation)
            self._store((page.id, 0), base)
        image = rotate_image(base, page.rotation)
        self._store(key, image)
        return image

    def prefetch(self, pages: Iterable[PageReference], sources: Mapping[str, SourceDocument]) -> int:
        """Render previews for ``pages`` in parallel; returns how many were produced."""
        jobs = [(page, sources[page.source_id]) for page in pages if page.source_id in sources]
        if not jobs:
            return 0
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(jobs))) as pool:
            results = list(pool.map(lambda job: self.get(*job), jobs))
        return len(results)

    def discard(self, page_id: str) -> None:
        with self._lock:
            for key in [key for key in self._images if key[0] == page_id]:
                del self._images[key]

    def clear(self) -> None:
        with self._lock:
            self._images = {}
