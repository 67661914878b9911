"""Read-only research-field hierarchy and its lazily populated cache.

The hierarchy itself is owned by an external lookup collaborator. The engine
receives a :class:`FieldHierarchyCache` wrapping a loader callable; the first
lookup invokes the loader and every later lookup reads the cached tree.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from scoring.text import normalize_label

LOGGER = logging.getLogger(__name__)

SAME_NODE_SCORE = 1.0
UNRELATED_SCORE = 0.1
SHARED_PATH_WEIGHT = 0.6
DISTANCE_WEIGHT = 0.4


@dataclass(frozen=True)
class FieldNode:
    """A node of the research-field tree."""

    node_id: str
    label: str
    parent_id: Optional[str]


class FieldHierarchy:
    """Immutable research-field tree with label and id lookup.

    Parameters
    ----------
    nodes:
        Nodes keyed by id. Build instances with :meth:`from_tree`.
    """

    def __init__(self, nodes: Mapping[str, FieldNode]):
        self._nodes: Dict[str, FieldNode] = dict(nodes)
        self._by_label: Dict[str, str] = {}
        for node in self._nodes.values():
            self._by_label.setdefault(normalize_label(node.label), node.node_id)

    @classmethod
    def from_tree(
        cls, roots: Union[Mapping[str, object], Sequence[Mapping[str, object]]]
    ) -> "FieldHierarchy":
        """Build a hierarchy from nested ``{id, label, children}`` mappings.

        ``roots`` is either a list of root nodes or a single root node.
        Nodes without an ``id`` use their label as id. Nodes without a label,
        and entries that are not mappings, are skipped together with their
        subtree.
        """

        if isinstance(roots, Mapping):
            roots = [roots]
        nodes: Dict[str, FieldNode] = {}
        stack: List[Tuple[Mapping[str, object], Optional[str]]] = [
            (root, None) for root in roots if isinstance(root, Mapping)
        ]
        while stack:
            raw, parent_id = stack.pop()
            label = raw.get("label") or raw.get("name")
            if not isinstance(label, str) or not label.strip():
                continue
            node_id = str(raw.get("id") or label)
            nodes[node_id] = FieldNode(node_id=node_id, label=label, parent_id=parent_id)
            children = raw.get("children") or []
            if isinstance(children, list):
                stack.extend((child, node_id) for child in children if isinstance(child, Mapping))
        return cls(nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def find(self, label_or_id: str) -> Optional[FieldNode]:
        """Return the node matching an id or a normalized label."""

        if label_or_id in self._nodes:
            return self._nodes[label_or_id]
        node_id = self._by_label.get(normalize_label(label_or_id))
        return self._nodes.get(node_id) if node_id else None

    def path(self, label_or_id: str) -> List[str]:
        """Return node ids from the root down to the matching node.

        Returns an empty list when the node is unknown.
        """

        node = self.find(label_or_id)
        path: List[str] = []
        seen = set()
        while node is not None and node.node_id not in seen:
            seen.add(node.node_id)
            path.append(node.node_id)
            node = self._nodes.get(node.parent_id) if node.parent_id else None
        path.reverse()
        return path


class FieldHierarchyCache:
    """Lazily populated, read-only cache around a hierarchy loader.

    Parameters
    ----------
    loader:
        Zero-argument callable returning either a :class:`FieldHierarchy` or
        nested ``{id, label, children}`` mappings, either one root node or a
        list of them. It runs at most once.
    """

    def __init__(self, loader: Callable[[], object]):
        self._loader = loader
        self._hierarchy: Optional[FieldHierarchy] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._hierarchy is not None

    def get(self) -> FieldHierarchy:
        if self._hierarchy is None:
            with self._lock:
                if self._hierarchy is None:
                    loaded = self._loader()
                    if isinstance(loaded, FieldHierarchy):
                        self._hierarchy = loaded
                    else:
                        self._hierarchy = FieldHierarchy.from_tree(loaded or [])
                    LOGGER.info("Loaded field hierarchy with %d nodes", len(self._hierarchy))
        return self._hierarchy


def hierarchy_score(
    reference: str,
    predicted: str,
    hierarchy: FieldHierarchy,
) -> Optional[float]:
    """Return how closely two research fields sit in the hierarchy.

    Parameters
    ----------
    reference:
        Reference field label or id.
    predicted:
        Predicted field label or id.
    hierarchy:
        Tree to resolve both fields in.

    Returns
    -------
    Optional[float]
        ``1.0`` for the same node, ``0.1`` when the paths share no ancestor,
        otherwise a blend of shared-path fraction and tree distance. ``None``
        when either field is not in the hierarchy.
    """

    ref_path = hierarchy.path(reference)
    pred_path = hierarchy.path(predicted)
    if not ref_path or not pred_path:
        return None
    if ref_path[-1] == pred_path[-1]:
        return SAME_NODE_SCORE

    common = 0
    for ref_id, pred_id in zip(ref_path, pred_path):
        if ref_id != pred_id:
            break
        common += 1
    if common == 0:
        return UNRELATED_SCORE

    distance = (len(ref_path) - common) + (len(pred_path) - common)
    shared = common / max(len(ref_path), len(pred_path))
    return SHARED_PATH_WEIGHT * shared + DISTANCE_WEIGHT / (1 + distance)
