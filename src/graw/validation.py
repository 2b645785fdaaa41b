"""Referential checks the builders deliberately leave out."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Set

from .graw import GraphModel, LAYER_ID, TOP_CELL_ID


@dataclass
class Issue:
    code: str
    cell_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.code} {self.cell_id}: {self.message}"


def check_references(model: GraphModel) -> List[Issue]:
    """Report id, parent and endpoint problems the editor would choke on.

    The model is only read; an empty list means the document is well formed.
    Parent chains are followed through the first cell carrying each id, so a
    repeated id is reported as E_DUPLICATE_ID and its own parent is not
    checked for E_UNROOTED.
    """
    issues: List[Issue] = []
    cells = model.cells

    if (
        len(cells) < 2
        or cells[0].id != TOP_CELL_ID
        or cells[1].id != LAYER_ID
        or cells[1].parent_id != TOP_CELL_ID
    ):
        issues.append(
            Issue(
                "E_MISSING_SCAFFOLD",
                cells[0].id if cells else "",
                f'document must start with cell "{TOP_CELL_ID}" and layer "{LAYER_ID}"',
            )
        )

    parents: Dict[str, str] = {}
    for cell in cells:
        if cell.id in parents:
            issues.append(Issue("E_DUPLICATE_ID", cell.id, f'duplicate id "{cell.id}"'))
            continue
        parents[cell.id] = cell.parent_id

    for cell in cells:
        if cell.is_vertex and cell.is_edge:
            issues.append(Issue("E_VERTEX_AND_EDGE", cell.id, "cell is both a vertex and an edge"))
        if cell.parent_id and cell.parent_id not in parents:
            issues.append(
                Issue("E_DANGLING_PARENT", cell.id, f'parent "{cell.parent_id}" does not exist')
            )
        if cell.source and cell.source not in parents:
            issues.append(
                Issue("E_DANGLING_SOURCE", cell.id, f'source "{cell.source}" does not exist')
            )
        if cell.target and cell.target not in parents:
            issues.append(
                Issue("E_DANGLING_TARGET", cell.id, f'target "{cell.target}" does not exist')
            )

    for cell_id in parents:
        if cell_id in (TOP_CELL_ID, LAYER_ID):
            continue
        if not _reaches_scaffold(cell_id, parents):
            parent = parents[cell_id]
            if parent and parent not in parents:
                # already reported as a dangling parent
                continue
            issues.append(
                Issue(
                    "E_UNROOTED",
                    cell_id,
                    f'parent chain does not reach "{TOP_CELL_ID}" or "{LAYER_ID}"',
                )
            )
    return issues


def _reaches_scaffold(cell_id: str, parents: Dict[str, str]) -> bool:
    seen: Set[str] = set()
    current = cell_id
    while current not in (TOP_CELL_ID, LAYER_ID):
        if current in seen or current not in parents:
            return False
        seen.add(current)
        current = parents[current]
    return True


__all__ = ["Issue", "check_references"]
