from __future__ import annotations

import pytest

from pagedeck.errors import AnalysisError
from pagedeck.insights import (
    ANALYSIS_FAILED,
    EXTRACTION_FAILED,
    NO_INSIGHTS,
    GeminiAnalyzer,
    InsightAdapter,
    extract_text,
)
from pagedeck.models import SourceDocument

from pdf_helpers import FakeAnalyzer, OfflineAnalyzer, make_pdf


def source(data: bytes) -> SourceDocument:
    return SourceDocument(id='src_test', name='t.pdf', size=len(data), data=data, page_count=1)


def test_extract_text_marks_pages_and_stops_at_limit():
    text = extract_text(make_pdf(*([100] * 7)), max_pages=5)
    assert '--- Page 1 ---' in text
    assert '--- Page 5 ---' in text
    assert '--- Page 6 ---' not in text


def test_extract_text_fails_on_garbage():
    with pytest.raises(AnalysisError):
        extract_text(b'definitely not a pdf')


def test_adapter_returns_trimmed_answer():
    analyzer = FakeAnalyzer('  Invoices from March.  ')
    adapter = InsightAdapter(analyzer, max_pages=2)
    assert adapter.analyze(source(make_pdf(100, 100, 100))) == 'Invoices from March.'
    assert analyzer.texts[0].count('--- Page') == 2


def test_adapter_empty_answer_falls_back():
    adapter = InsightAdapter(FakeAnalyzer(''))
    assert adapter.analyze(source(make_pdf(100))) == NO_INSIGHTS


@pytest.mark.parametrize('analyzer', [OfflineAnalyzer(), FakeAnalyzer(error=TimeoutError('slow'))])
def test_adapter_swallows_analyzer_failures(analyzer):
    assert InsightAdapter(analyzer).analyze(source(make_pdf(100))) == ANALYSIS_FAILED


def test_adapter_swallows_extraction_failures():
    analyzer = FakeAnalyzer()
    assert InsightAdapter(analyzer).analyze(source(b'not a pdf')) == EXTRACTION_FAILED
    assert analyzer.texts == []


def test_gemini_analyzer_requires_key():
    with pytest.raises(AnalysisError):
        GeminiAnalyzer(None, model='gemini-2.5-flash').analyze('text')
