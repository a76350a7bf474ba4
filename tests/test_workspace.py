from __future__ import annotations

import threading

import pytest

from pagedeck.errors import BusyError, LoadError, RangeError
from pagedeck.workspace import BatchPolicy, Upload, Workspace

from pdf_helpers import make_pdf


def layout(workspace, *sources):
    names = {source.id: label for label, source in zip('ABCDEFG', sources)}
    return [f'{names[p.source_id]}:{p.page_index}' for p in workspace.pages]


def test_add_source_appends_pages_in_upload_order(loaded):
    workspace, a, b = loaded
    assert layout(workspace, a, b) == ['A:0', 'A:1', 'A:2', 'B:0', 'B:1']
    assert [p.rotation for p in workspace.pages] == [0] * 5
    assert a.page_count == 3 and b.page_count == 2
    assert a.name == 'a.pdf'
    assert a.size == len(a.data)


def test_ids_are_unique_and_distinct_from_sources(loaded):
    workspace, a, b = loaded
    page_ids = [p.id for p in workspace.pages]
    assert len(set(page_ids)) == 5
    assert not set(page_ids) & {a.id, b.id}


def test_batch_upload_keeps_file_blocks_in_order(workspace):
    files = [make_pdf(*range(100 + 10 * n, 100 + 10 * n + n + 1)) for n in range(6)]
    result = workspace.add_sources(Upload(data, f'f{n}.pdf') for n, data in enumerate(files))
    assert [s.name for s in result.added] == [f'f{n}.pdf' for n in range(6)]
    expected = [(s.id, i) for s in result.added for i in range(s.page_count)]
    assert [(p.source_id, p.page_index) for p in workspace.pages] == expected
    assert result.page_count == 21


def test_concurrent_uploads_do_not_interleave(codec):
    workspace = Workspace(codec)
    files = [make_pdf(*([100 + n] * 8)) for n in range(5)]
    threads = [
        threading.Thread(target=workspace.add_source, args=(data, f'f{n}.pdf'))
        for n, data in enumerate(files)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    pages = workspace.pages
    assert len(pages) == 40
    for start in range(0, 40, 8):
        block = pages[start:start + 8]
        assert len({p.source_id for p in block}) == 1
        assert [p.page_index for p in block] == list(range(8))


def test_non_pdf_is_rejected_without_touching_state(loaded):
    workspace, a, b = loaded
    before = workspace.pages
    with pytest.raises(LoadError) as excinfo:
        workspace.add_source(b'just some text', 'notes.txt')
    assert excinfo.value.name == 'notes.txt'
    with pytest.raises(LoadError):
        workspace.add_source(b'', 'empty.pdf')
    assert workspace.pages == before
    assert workspace.sources == (a, b)


def test_batch_skip_policy_loads_the_good_files(workspace, pdf_a, pdf_b):
    result = workspace.add_sources(
        [Upload(pdf_a, 'a.pdf'), Upload(b'garbage', 'bad.pdf'), Upload(pdf_b, 'b.pdf')],
        BatchPolicy.SKIP,
    )
    assert [s.name for s in result.added] == ['a.pdf', 'b.pdf']
    assert [f.name for f in result.failures] == ['bad.pdf']
    assert len(workspace) == 5


def test_batch_abort_policy_adds_nothing(workspace, pdf_a, pdf_b):
    with pytest.raises(LoadError) as excinfo:
        workspace.add_sources(
            [Upload(pdf_a, 'a.pdf'), Upload(b'garbage', 'bad.pdf'), Upload(pdf_b, 'b.pdf')],
            'abort',
        )
    assert excinfo.value.name == 'bad.pdf'
    assert len(workspace) == 0
    assert workspace.sources == ()


def test_empty_batch_is_a_no_op(workspace):
    result = workspace.add_sources([])
    assert result.added == [] and result.failures == []


def test_rotate_cycles_back_after_four_turns(loaded):
    workspace, _, _ = loaded
    page_id = workspace.pages[3].id
    seen = []
    for _ in range(4):
        seen.append(workspace.rotate_page(page_id).rotation)
    assert seen == [90, 180, 270, 0]
    assert workspace.rotate_page(page_id, -90).rotation == 270
    assert workspace.rotate_page(page_id, 450).rotation == 0


def test_rotate_unknown_page_is_ignored(loaded):
    workspace, _, _ = loaded
    before = workspace.pages
    assert workspace.rotate_page('pg_missing') is None
    assert workspace.pages == before


def test_rotate_rejects_odd_angles(loaded):
    workspace, _, _ = loaded
    with pytest.raises(ValueError):
        workspace.rotate_page(workspace.pages[0].id, 45)
    assert workspace.pages[0].rotation == 0


def test_reorder_matches_worked_example(loaded):
    workspace, a, b = loaded
    ids_before = {p.id for p in workspace.pages}
    workspace.reorder(4, 0)
    assert layout(workspace, a, b) == ['B:1', 'A:0', 'A:1', 'A:2', 'B:0']
    assert {p.id for p in workspace.pages} == ids_before

    workspace.rotate_page(workspace.pages[0].id, 90)
    assert workspace.pages[0].rotation == 90


def test_reorder_is_undone_by_the_inverse_move(loaded):
    workspace, _, _ = loaded
    original = workspace.pages
    for i in range(5):
        for j in range(5):
            workspace.reorder(i, j)
            workspace.reorder(j, i)
            assert workspace.pages == original


def test_reorder_same_index_changes_nothing(loaded):
    workspace, _, _ = loaded
    original = workspace.pages
    workspace.reorder(2, 2)
    assert workspace.pages == original


@pytest.mark.parametrize('from_index, to_index', [(5, 0), (0, 5), (-1, 0), (0, -1)])
def test_reorder_out_of_range_fails_loudly(loaded, from_index, to_index):
    workspace, _, _ = loaded
    original = workspace.pages
    with pytest.raises(RangeError):
        workspace.reorder(from_index, to_index)
    assert workspace.pages == original


def test_range_error_is_an_index_error(workspace):
    with pytest.raises(IndexError):
        workspace.reorder(0, 0)


def test_remove_page_is_idempotent(loaded):
    workspace, a, b = loaded
    page_id = workspace.pages[1].id
    workspace.remove_page(page_id)
    once = workspace.pages
    workspace.remove_page(page_id)
    assert workspace.pages == once
    assert layout(workspace, a, b) == ['A:0', 'A:2', 'B:0', 'B:1']
    # the source stays registered even once none of its pages remain
    for page in [p for p in workspace.pages if p.source_id == b.id]:
        workspace.remove_page(page.id)
    assert b.id in {s.id for s in workspace.sources}


def test_duplicate_inserts_copy_after_original(loaded):
    workspace, a, b = loaded
    original = workspace.pages[0]
    workspace.rotate_page(original.id, 180)
    copy = workspace.duplicate_page(original.id)
    pages = workspace.pages
    assert pages[1] == copy
    assert copy.id != original.id
    assert (copy.source_id, copy.page_index, copy.rotation) == (a.id, 0, 180)
    assert workspace.duplicate_page('pg_missing') is None


def test_snapshot_is_not_affected_by_later_edits(loaded):
    workspace, _, _ = loaded
    snapshot = workspace.snapshot()
    workspace.rotate_page(snapshot.pages[0].id)
    workspace.reorder(0, 4)
    workspace.clear()
    assert len(snapshot) == 5
    assert snapshot.pages[0].rotation == 0
    assert len(snapshot.sources) == 2


def test_clear_resets_everything(loaded):
    workspace, _, _ = loaded
    workspace.set_insights('summary')
    workspace.clear()
    assert workspace.pages == ()
    assert workspace.sources == ()
    assert workspace.insights is None


def test_processing_rejects_overlap_and_always_resets(workspace):
    with workspace.processing('upload'):
        assert workspace.is_processing
        with pytest.raises(BusyError):
            with workspace.processing('merge'):
                pass
    assert not workspace.is_processing

    with pytest.raises(RuntimeError):
        with workspace.processing('merge'):
            raise RuntimeError('boom')
    assert not workspace.is_processing


def test_attach_preview_and_to_dict(loaded):
    workspace, a, _ = loaded
    page_id = workspace.pages[0].id
    workspace.attach_preview(page_id, 'thumb-1')
    state = workspace.to_dict()
    assert state['pages'][0]['preview'] == 'thumb-1'
    assert state['sources'][0] == {'id': a.id, 'name': 'a.pdf', 'size': a.size, 'page_count': 3}
    assert state['is_processing'] is False
