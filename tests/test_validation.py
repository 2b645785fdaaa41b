from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from graw import Cell, GraphModel, check_references, new_edge, new_graph, new_shape


class CheckReferencesTests(unittest.TestCase):
    @staticmethod
    def _codes(model: GraphModel) -> list[tuple[str, str]]:
        return [(issue.code, issue.cell_id) for issue in check_references(model)]

    def test_well_formed_document(self) -> None:
        graph = new_graph()
        graph.add(new_shape("a", "1")).add(new_shape("b", "a")).add(new_edge("e", "1", "a", "b"))
        self.assertEqual(check_references(graph), [])

    def test_missing_scaffold(self) -> None:
        self.assertEqual(self._codes(GraphModel()), [("E_MISSING_SCAFFOLD", "")])
        swapped = GraphModel(cells=[Cell(id="1"), Cell(id="0", parent_id="1")])
        self.assertIn(("E_MISSING_SCAFFOLD", "1"), self._codes(swapped))

    def test_duplicates_and_dangling_references(self) -> None:
        graph = new_graph()
        graph.add(new_shape("a", "1"))
        graph.add(new_shape("a", "1"))
        graph.add(new_shape("orphan", "ghost"))
        graph.add(new_edge("e", "1", "nowhere", "a"))
        graph.add(new_edge("f", "1", "a", "nowhere"))
        self.assertEqual(
            self._codes(graph),
            [
                ("E_DUPLICATE_ID", "a"),
                ("E_DANGLING_PARENT", "orphan"),
                ("E_DANGLING_SOURCE", "e"),
                ("E_DANGLING_TARGET", "f"),
            ],
        )

    def test_vertex_and_edge_flags(self) -> None:
        cell = new_shape("both", "1")
        cell.edge = "1"
        self.assertEqual(self._codes(new_graph().add(cell)), [("E_VERTEX_AND_EDGE", "both")])

    def test_parent_cycles_and_missing_parent(self) -> None:
        graph = new_graph()
        graph.add(new_shape("x", "y")).add(new_shape("y", "x")).add(Cell(id="floating"))
        self.assertEqual(
            self._codes(graph),
            [("E_UNROOTED", "x"), ("E_UNROOTED", "y"), ("E_UNROOTED", "floating")],
        )

    def test_repeated_id_only_checks_first_parent_chain(self) -> None:
        graph = new_graph().add(new_shape("d", "1"))
        graph.add(new_shape("d", "d"))
        self.assertEqual(self._codes(graph), [("E_DUPLICATE_ID", "d")])

    def test_check_does_not_mutate(self) -> None:
        graph = new_graph().add(new_shape("a", "missing"))
        before = [(c.id, c.parent_id) for c in graph.cells]
        check_references(graph)
        self.assertEqual([(c.id, c.parent_id) for c in graph.cells], before)

    def test_issue_str(self) -> None:
        issue = check_references(new_graph().add(new_shape("a", "ghost")))[0]
        self.assertEqual(str(issue), 'E_DANGLING_PARENT a: parent "ghost" does not exist')


if __name__ == "__main__":
    unittest.main()
