import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .logger import get_logger
from .normalize import normalize_edge

logger = get_logger()

STORAGE_KEY = "ens-custom-edges"

Edge = Tuple[str, str]


class DuplicateEdgeError(ValueError):
    """Raised when an edge already exists in either orientation."""


def load_store(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {STORAGE_KEY: []}
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read().strip()
            if not content:
                return {STORAGE_KEY: []}
            store = json.loads(content)
    except (json.JSONDecodeError, IOError) as e:
        logger.error("Failed to load custom edges", path=str(path), error=str(e))
        return {STORAGE_KEY: []}
    if not isinstance(store, dict):
        logger.error("Edge store is not a JSON object", path=str(path))
        return {STORAGE_KEY: []}
    return store


def save_store(path: Path, store: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(store, f, indent=2, ensure_ascii=False)


def check_edge(edge: Edge) -> Edge:
    """Validate an edge and return it in normalized orientation."""
    if len(edge) != 2:
        raise ValueError(f"An edge needs exactly two names: {edge!r}")
    a, b = edge
    if not isinstance(a, str) or not isinstance(b, str) or not a.strip() or not b.strip():
        raise ValueError("Both ENS names are required")
    if a.strip().lower() == b.strip().lower():
        raise ValueError(f'Cannot connect "{a.strip()}" to itself')
    return normalize_edge(a, b)


class EdgeStore:
    """User-authored edges persisted under a single key of a JSON file.

    Reads and writes are best effort: an unreadable file yields no edges and
    a failed write keeps the in-memory state, both only logged.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._edges: List[Edge] = self._load()

    def _load(self) -> List[Edge]:
        store = load_store(self.path)
        edges: List[Edge] = []
        items = store.get(STORAGE_KEY) or []
        if not isinstance(items, list):
            logger.error("Stored custom edges are not a list", path=str(self.path))
            items = []
        for item in items:
            try:
                edge = check_edge(tuple(item))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping invalid stored edge", edge=item, error=str(e))
                continue
            if edge not in edges:
                edges.append(edge)
        return edges

    def _save(self) -> None:
        try:
            save_store(self.path, {STORAGE_KEY: [list(e) for e in self._edges]})
        except (IOError, OSError) as e:
            logger.error("Failed to save custom edges", path=str(self.path), error=str(e))

    def list_custom_edges(self) -> List[Edge]:
        return list(self._edges)

    def contains(self, edge: Edge) -> bool:
        a, b = edge
        return normalize_edge(a, b) in self._edges

    def add_edge(self, edge: Edge) -> Edge:
        normalized = check_edge(edge)
        if normalized in self._edges:
            raise DuplicateEdgeError(
                f"Connection already exists between {normalized[0]} and {normalized[1]}"
            )
        self._edges.append(normalized)
        self._save()
        logger.info("Added custom edge", a=normalized[0], b=normalized[1])
        return normalized

    def remove_edge(self, edge: Edge) -> bool:
        a, b = edge
        normalized = normalize_edge(a, b)
        if normalized not in self._edges:
            return False
        self._edges.remove(normalized)
        self._save()
        logger.info("Removed custom edge", a=normalized[0], b=normalized[1])
        return True

    def clear(self) -> int:
        removed = len(self._edges)
        self._edges = []
        self._save()
        return removed

    def __len__(self) -> int:
        return len(self._edges)
