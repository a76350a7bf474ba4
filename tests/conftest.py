from __future__ import annotations

import pytest

from pagedeck.codec import PypdfCodec
from pagedeck.controller import WorkspaceController
from pagedeck.settings import Settings
from pagedeck.workspace import Workspace

from pdf_helpers import FakeAnalyzer, FakeRenderer, make_pdf


@pytest.fixture
def pdf_a() -> bytes:
    return make_pdf(100, 101, 102)


@pytest.fixture
def pdf_b() -> bytes:
    return make_pdf(200, 201)


@pytest.fixture
def codec() -> PypdfCodec:
    return PypdfCodec()


@pytest.fixture
def workspace(codec) -> Workspace:
    return Workspace(codec)


@pytest.fixture
def loaded(workspace, pdf_a, pdf_b):
    """Workspace holding A (3 pages) then B (2 pages)."""
    a = workspace.add_source(pdf_a, 'a.pdf')
    b = workspace.add_source(pdf_b, 'b.pdf')
    return workspace, a, b


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def controller(renderer, analyzer) -> WorkspaceController:
    return WorkspaceController(Settings(), renderer=renderer, analyzer=analyzer)
