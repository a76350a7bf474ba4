"""PDF codec backends.

Everything that touches PDF bytes goes through a codec: parse an upload,
copy a page into a new document, rotate it, serialize the result. Two
backends are provided, pypdf (default) and pikepdf; both keep the source
handle untouched so the same parsed source can feed many output pages.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from pypdf import PdfReader, PdfWriter

from .errors import LoadError

logger = logging.getLogger(__name__)

# PDF headers may be preceded by junk; readers accept it within the first 1K.
_HEADER_WINDOW = 1024


def looks_like_pdf(data: bytes) -> bool:
    return bool(data) and b'%PDF-' in data[:_HEADER_WINDOW]


@dataclass
class PendingPage:
    """A page selected from a source, not yet placed in the output."""

    page: Any
    rotation: int = 0


class PdfCodec(Protocol):
    name: str

    def load(self, data: bytes) -> Any: ...

    def page_count(self, handle: Any) -> int: ...

    def new_document(self) -> Any: ...

    def copy_page(self, src: Any, page_index: int, dest: Any) -> PendingPage: ...

    def set_rotation(self, page: PendingPage, degrees: int) -> None: ...

    def add_page(self, dest: Any, page: PendingPage) -> None: ...

    def save(self, handle: Any) -> bytes: ...


def _check_index(page_index: int, count: int) -> None:
    if not 0 <= page_index < count:
        raise IndexError(f'page index {page_index} out of range for {count}-page document')


class PypdfCodec:
    name = 'pypdf'

    def load(self, data: bytes) -> PdfReader:
        if not data:
            raise LoadError('empty file')
        if not looks_like_pdf(data):
            raise LoadError('not a PDF document')
        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted:
                reader.decrypt('')
            # force the page tree to be walked now rather than mid-merge
            len(reader.pages)
        except Exception as exc:
            raise LoadError(f'unreadable PDF: {exc}') from exc
        return reader

    def page_count(self, handle: PdfReader) -> int:
        return len(handle.pages)

    def new_document(self) -> PdfWriter:
        return PdfWriter()

    def copy_page(self, src: PdfReader, page_index: int, dest: PdfWriter) -> PendingPage:
        _check_index(page_index, len(src.pages))
        return PendingPage(src.pages[page_index])

    def set_rotation(self, page: PendingPage, degrees: int) -> None:
        page.rotation = degrees % 360

    def add_page(self, dest: PdfWriter, page: PendingPage) -> None:
        # add_page clones, so rotating the clone leaves the reader's page alone
        added = dest.add_page(page.page)
        if page.rotation:
            added.rotation = (added.rotation + page.rotation) % 360

    def save(self, handle: PdfWriter) -> bytes:
        buf = io.BytesIO()
        handle.write(buf)
        return buf.getvalue()


class PikepdfCodec:
    name = 'pikepdf'

    def __init__(self) -> None:
        import pikepdf
        self._pikepdf = pikepdf

    def load(self, data: bytes):
        if not data:
            raise LoadError('empty file')
        if not looks_like_pdf(data):
            raise LoadError('not a PDF document')
        try:
            pdf = self._pikepdf.Pdf.open(io.BytesIO(data))
            len(pdf.pages)
        except Exception as exc:
            raise LoadError(f'unreadable PDF: {exc}') from exc
        return pdf

    def page_count(self, handle) -> int:
        return len(handle.pages)

    def new_document(self):
        return self._pikepdf.Pdf.new()

    def copy_page(self, src, page_index: int, dest) -> PendingPage:
        _check_index(page_index, len(src.pages))
        return PendingPage(src.pages[page_index])

    def set_rotation(self, page: PendingPage, degrees: int) -> None:
        page.rotation = degrees % 360

    def add_page(self, dest, page: PendingPage) -> None:
        # A page appended twice shares its first copy, so set /Rotate absolutely.
        intrinsic = int(page.page.obj.get('/Rotate', 0))
        dest.pages.append(page.page)
        dest.pages[-1].obj.Rotate = (intrinsic + page.rotation) % 360

    def save(self, handle) -> bytes:
        buf = io.BytesIO()
        handle.save(buf)
        return buf.getvalue()


CODECS = {
    PypdfCodec.name: PypdfCodec,
    PikepdfCodec.name: PikepdfCodec,
}


def get_codec(name: str = 'pypdf') -> PdfCodec:
    try:
        factory = CODECS[name]
    except KeyError:
        raise ValueError(f'unknown codec {name!r}; expected one of {sorted(CODECS)}') from None
    codec = factory()
    logger.info('using %s codec', codec.name)
    return codec
