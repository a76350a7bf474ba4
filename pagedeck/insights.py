"""Advisory document insights.

Text from the first pages of a source is sent to a text-analysis service.
The result is informational only: :class:`InsightAdapter` never raises, it
degrades to a fixed message instead.
"""

from __future__ import annotations

import io
import logging
from typing import List, Optional, Protocol

from pypdf import PdfReader

from .errors import AnalysisError
from .models import SourceDocument

logger = logging.getLogger(__name__)

NO_INSIGHTS = 'No insights available.'
ANALYSIS_FAILED = 'Failed to get AI insights. Please check your connection.'
EXTRACTION_FAILED = 'Error generating insights.'

PROMPT_TEMPLATE = """
Analyze the following extracted text from a PDF document.
Provide:
1. A brief 2-sentence summary of the content.
2. A suggested intelligent filename (without extension).
3. Key topics identified.
4. If it looks like a multi-document bundle (e.g. several invoices or reports), suggest where to split it.

Text content:
{text}
"""


class TextAnalyzer(Protocol):
    def analyze(self, text: str) -> str: ...


def _pypdf_pages(data: bytes, max_pages: int) -> List[str]:
    reader = PdfReader(io.BytesIO(data))
    texts = []
    for page in reader.pages[:max_pages]:
        try:
            texts.append(page.extract_text() or '')
        except Exception:
            logger.debug('pypdf text extraction failed for one page', exc_info=True)
            texts.append('')
    return texts


def _fitz_pages(data: bytes, max_pages: int) -> List[str]:
    import fitz
    doc = fitz.open(stream=data, filetype='pdf')
    try:
        return [doc.load_page(i).get_text('text') or '' for i in range(min(max_pages, len(doc)))]
    finally:
        doc.close()


def extract_text(data: bytes, max_pages: int = 5) -> str:
    """Join the text of the first ``max_pages`` pages, each under a page marker.

    Tries pypdf first and falls back to PyMuPDF when pypdf finds nothing.
    """
    pages: List[str] = []
    try:
        pages = _pypdf_pages(data, max_pages)
    except Exception:
        logger.debug('pypdf could not read document, trying PyMuPDF', exc_info=True)
    if not any(p.strip() for p in pages):
        try:
            pages = _fitz_pages(data, max_pages)
        except ImportError:
            logger.debug('PyMuPDF not installed')
        except Exception as exc:
            if not pages:
                raise AnalysisError(f'cannot extract text: {exc}') from exc
    if not pages:
        raise AnalysisError('cannot extract text: no readable pages')
    return ''.join(f'--- Page {i} ---\n{text}\n' for i, text in enumerate(pages, 1))


class GeminiAnalyzer:
    name = 'gemini'

    def __init__(self, api_key: Optional[str], *, model: str, timeout_seconds: float = 30.0) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds

    def analyze(self, text: str) -> str:
        if not self.api_key:
            raise AnalysisError('GEMINI_API_KEY not configured')
        try:
            from google import genai
            from google.genai import types
        except Exception as exc:  # pragma: no cover
            raise AnalysisError(f'Gemini SDK unavailable: {exc}') from exc

        # google-genai HttpOptions.timeout is in milliseconds.
        timeout_millis = max(1000, int(self.timeout_seconds * 1000))
        client = genai.Client(api_key=self.api_key, http_options=types.HttpOptions(timeout=timeout_millis))
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=PROMPT_TEMPLATE.format(text=text),
            )
        except Exception as exc:
            raise AnalysisError(f'Gemini request failed: {exc}') from exc
        return response.text or ''


class InsightAdapter:
    def __init__(self, analyzer: TextAnalyzer, *, max_pages: int = 5) -> None:
        self.analyzer = analyzer
        self.max_pages = max_pages

    def analyze(self, source: SourceDocument) -> str:
        try:
            text = extract_text(source.data, self.max_pages)
        except Exception:
            logger.exception('text extraction failed for %s', source.id)
            return EXTRACTION_FAILED
        try:
            answer = self.analyzer.analyze(text)
        except Exception:
            logger.exception('text analysis failed for %s', source.id)
            return ANALYSIS_FAILED
        return (answer or '').strip() or NO_INSIGHTS
