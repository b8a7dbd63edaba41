"""
Social graph derivation and the edge editor.

The graph is never stored: it is rebuilt from the pairs parsed out of the
input text followed by the persisted custom edges.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .logger import get_logger
from .normalize import same_edge
from .storage import DuplicateEdgeError, Edge, EdgeStore

logger = get_logger()


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


@dataclass
class GraphData:
    nodes: List[str] = field(default_factory=list)
    links: List[Dict[str, str]] = field(default_factory=list)
    text_edge_count: int = 0
    custom_edge_count: int = 0

    @property
    def edge_count(self) -> int:
        return len(self.links)

    def summary(self) -> str:
        return (
            f"{_plural(self.edge_count, 'total connection')} "
            f"({self.text_edge_count} from input, {self.custom_edge_count} custom) "
            f"- {_plural(len(self.nodes), 'unique node')}"
        )

    def to_dict(self) -> Dict[str, list]:
        return {"nodes": [{"id": n, "name": n} for n in self.nodes], "links": list(self.links)}


def build_graph(text_pairs: Sequence[Edge], custom_edges: Sequence[Edge]) -> GraphData:
    """Nodes in first-seen order, links in input order then custom order."""
    graph = GraphData(text_edge_count=len(text_pairs), custom_edge_count=len(custom_edges))
    seen = set()
    for a, b in list(text_pairs) + list(custom_edges):
        for node in (a, b):
            if node not in seen:
                seen.add(node)
                graph.nodes.append(node)
        graph.links.append({"source": a, "target": b})
    return graph


class GraphEditor:
    """Two-state node selector for authoring custom edges.

    In view mode a node click opens that name's profile. In edit mode the
    first click selects a node, clicking it again deselects it, and a click
    on a second node connects the two.
    """

    def __init__(self, store: EdgeStore, text_pairs: Iterable[Edge] = ()):
        self.store = store
        self.text_pairs: List[Edge] = list(text_pairs)
        self.edit_mode = False
        self.selected: Optional[str] = None

    def set_text_pairs(self, pairs: Iterable[Edge]) -> None:
        self.text_pairs = list(pairs)

    @property
    def custom_edges(self) -> List[Edge]:
        return self.store.list_custom_edges()

    def graph(self) -> GraphData:
        return build_graph(self.text_pairs, self.custom_edges)

    def toggle_edit_mode(self) -> bool:
        self.edit_mode = not self.edit_mode
        self.selected = None
        return self.edit_mode

    def cancel_selection(self) -> None:
        self.selected = None

    def edge_exists(self, a: str, b: str) -> bool:
        if self.store.contains((a, b)):
            return True
        return any(same_edge(pair, (a, b)) for pair in self.text_pairs)

    def is_custom(self, a: str, b: str) -> bool:
        return self.store.contains((a, b))

    def select_node(self, node_id: str) -> Optional[str]:
        """
        Handle a click on a node.

        Returns:
            The name to open as a profile in view mode, otherwise None.

        Raises:
            DuplicateEdgeError: The second node is already connected to the first.
        """
        if not node_id:
            return None
        if not self.edit_mode:
            return node_id

        if self.selected is None:
            self.selected = node_id
            return None

        first = self.selected
        self.selected = None
        if first == node_id:
            return None

        self.connect(first, node_id)
        return None

    def connect(self, a: str, b: str) -> Edge:
        """Add a custom edge unless the pair is already connected in either collection."""
        if self.edge_exists(a, b):
            raise DuplicateEdgeError(f"Connection already exists between {a} and {b}")
        return self.store.add_edge((a, b))

    def delete_edge(self, a: str, b: str) -> bool:
        """Delete a custom edge; edges from the input text cannot be deleted here."""
        if not self.is_custom(a, b):
            if any(same_edge(pair, (a, b)) for pair in self.text_pairs):
                raise ValueError("Can only delete custom edges. This edge is from the text input.")
            return False
        return self.store.remove_edge((a, b))

    def clear_custom_edges(self) -> int:
        self.selected = None
        removed = self.store.clear()
        logger.info("Cleared custom edges", removed=removed)
        return removed
