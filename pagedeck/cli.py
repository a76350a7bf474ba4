"""Command-line page assembler.

Example::

    pagedeck report.pdf appendix.pdf -o out.pdf --order 4,1,2,3 --rotate 4:90
    pagedeck scans.pdf --split pages/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .assembly import merge, split_all
from .codec import CODECS, get_codec
from .errors import PageDeckError
from .workspace import BatchPolicy, Upload, Workspace

logger = logging.getLogger(__name__)


def parse_order(text: str) -> List[int]:
    """``"3,1-2"`` -> ``[3, 1, 2]`` (1-based slot numbers)."""
    order: List[int] = []
    for part in text.split(','):
        part = part.strip()
        if not part:
            continue
        if '-' in part:
            a, b = part.split('-', 1)
            order.extend(range(int(a), int(b) + 1))
        else:
            order.append(int(part))
    return order


def parse_rotations(items: Sequence[str]) -> Dict[int, int]:
    rotations: Dict[int, int] = {}
    for item in items:
        slot, _, degrees = item.partition(':')
        rotations[int(slot)] = rotations.get(int(slot), 0) + int(degrees or 90)
    return rotations


def _slot(pages, number: int):
    if not 1 <= number <= len(pages):
        raise ValueError(f'page {number} out of range 1..{len(pages)}')
    return pages[number - 1]


def arrange(workspace: Workspace, order: Sequence[int], rotations: Dict[int, int]) -> None:
    """Apply rotations and a new order given in terms of the initial slot numbers.

    Slots missing from ``order`` are removed, slots listed twice are duplicated.
    """
    initial = workspace.pages
    for number, degrees in rotations.items():
        workspace.rotate_page(_slot(initial, number).id, degrees)
    if not order:
        return
    wanted: List[str] = []
    for number in order:
        page_id = _slot(initial, number).id
        if page_id in wanted:
            page_id = workspace.duplicate_page(page_id).id
        wanted.append(page_id)
    keep = set(wanted)
    for page in workspace.pages:
        if page.id not in keep:
            workspace.remove_page(page.id)
    for target, page_id in enumerate(wanted):
        current = [page.id for page in workspace.pages].index(page_id)
        workspace.reorder(current, target)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='pagedeck', description='Merge, reorder, rotate and split PDF pages.')
    parser.add_argument('inputs', nargs='+', type=Path, help='source PDF files, in upload order')
    parser.add_argument('-o', '--output', type=Path, help='merged output file')
    parser.add_argument('--split', type=Path, metavar='DIR', help='write page_1.pdf, page_2.pdf, ... into DIR')
    parser.add_argument('--order', type=parse_order, default=[], help='1-based slots to keep, e.g. 3,1-2')
    parser.add_argument('--rotate', action='append', default=[], metavar='N:DEG', help='rotate slot N by DEG')
    parser.add_argument('--codec', choices=sorted(CODECS), default='pypdf')
    parser.add_argument('--policy', choices=[p.value for p in BatchPolicy], default=BatchPolicy.SKIP.value)
    parser.add_argument('-v', '--verbose', action='store_true')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.output and not args.split:
        parser.error('one of --output or --split is required')
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    workspace = Workspace(get_codec(args.codec))
    try:
        uploads = [Upload(data=path.read_bytes(), name=path.name) for path in args.inputs]
        result = workspace.add_sources(uploads, BatchPolicy(args.policy))
        for failure in result.failures:
            print(f'skipped {failure.message}', file=sys.stderr)
        arrange(workspace, args.order, parse_rotations(args.rotate))
        snapshot = workspace.snapshot()
        if args.output:
            args.output.write_bytes(merge(snapshot, workspace.codec))
            logger.info('wrote %s (%d pages)', args.output, len(snapshot))
        if args.split:
            args.split.mkdir(parents=True, exist_ok=True)
            for page in split_all(snapshot, workspace.codec):
                (args.split / page.filename).write_bytes(page.data)
            logger.info('wrote %d files to %s', len(snapshot), args.split)
    except (PageDeckError, ValueError, OSError) as exc:
        print(f'error: {exc}', file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
