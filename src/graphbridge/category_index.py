"""Hierarchical, priority-ordered and keyword-searchable node menu."""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from .config import IndexConfig
from .markers import DEFAULT_CATEGORY_PRIORITY, GraphCategory
from .nodes.schema import NodeDescriptor
from .value_types import Color

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

# Fallback presentation by top-level category name
CATEGORY_COLORS: dict[str, Color] = {
    "Math": Color(0.3, 0.6, 0.9),
    "Logic": Color(0.9, 0.6, 0.3),
    "Flow": Color(0.5, 0.8, 0.5),
    "String": Color(0.9, 0.4, 0.6),
    "Array": Color(0.6, 0.5, 0.9),
    "Vector": Color(0.8, 0.8, 0.3),
    "Transform": Color(0.4, 0.7, 0.7),
    "Physics": Color(0.7, 0.4, 0.4),
    "Audio": Color(0.6, 0.8, 0.4),
    "Network": Color(0.4, 0.6, 0.8),
    "Player": Color(0.8, 0.5, 0.8),
}
DEFAULT_NODE_COLOR = Color(0.5, 0.5, 0.5)

CATEGORY_ICONS: dict[str, str] = {
    "Math": "d_Profiler.CPU",
    "Logic": "d_FilterByType",
    "Flow": "d_Animation Icon",
    "String": "d_Font Icon",
    "Array": "d_PreMatCube",
    "Vector": "d_Transform Icon",
    "Physics": "d_Rigidbody Icon",
    "Audio": "d_AudioSource Icon",
}
DEFAULT_NODE_ICON = "d_cs Script Icon"

_TOKEN_SPLIT = re.compile(r"[\W_]+")


def tokenize(text: str, min_length: int = 1) -> list[str]:
    """Lower-case tokens of ``text`` split on whitespace and punctuation."""
    return [t for t in _TOKEN_SPLIT.split(text.lower()) if len(t) >= min_length]


@dataclass
class CategoryEntry:
    """One menu category with its sub-categories and nodes."""

    segment: str
    path: str
    icon: str | None = None
    priority: int = DEFAULT_CATEGORY_PRIORITY
    children: list["CategoryEntry"] = field(default_factory=list)
    leaves: list[NodeDescriptor] = field(default_factory=list)

    def child(self, segment: str) -> "CategoryEntry | None":
        return next((c for c in self.children if c.segment == segment), None)

    def walk(self) -> Iterator["CategoryEntry"]:
        """Yield this entry and all descendants, depth first in menu order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def node_count(self) -> int:
        return len(self.leaves) + sum(c.node_count() for c in self.children)

    def to_dict(self) -> dict[str, Any]:
        """Structural snapshot used to compare trees."""
        return {
            "segment": self.segment,
            "path": self.path,
            "icon": self.icon,
            "priority": self.priority,
            "children": [c.to_dict() for c in self.children],
            "leaves": [d.key for d in self.leaves],
        }


class CategoryIndex:
    """Category tree plus an inverted keyword index over node descriptors.

    Category markers override icon and priority of the entry whose path
    they match by longest prefix. Rebuilding from the same descriptors and
    categories yields a structurally identical tree.
    """

    def __init__(self, config: IndexConfig | None = None):
        self.config = config or IndexConfig()
        self.root = CategoryEntry("", "", priority=self.config.default_priority)
        self._categories: dict[tuple[str, ...], GraphCategory] = {}
        self._descriptors: dict[str, NodeDescriptor] = {}
        self._postings: dict[str, set[str]] = {}
        self._tokens: list[str] = []

    @classmethod
    def build(
        cls,
        descriptors: Iterable[NodeDescriptor],
        categories: Iterable[GraphCategory] = (),
        config: IndexConfig | None = None,
    ) -> "CategoryIndex":
        index = cls(config)
        index.rebuild(descriptors, categories)
        return index

    def rebuild(
        self,
        descriptors: Iterable[NodeDescriptor],
        categories: Iterable[GraphCategory] = (),
    ) -> None:
        """Replace the index contents with ``descriptors``.

        Args:
            descriptors: Accepted node descriptors
            categories: Category markers; a later marker for the same path wins
        """
        self.root = CategoryEntry("", "", priority=self.config.default_priority)
        self._categories = {tuple(c.path.split("/")): c for c in categories}
        self._descriptors = {}
        self._postings = {}

        for descriptor in descriptors:
            self._insert(descriptor)
        self._sort(self.root)
        self._tokens = sorted(self._postings)

        logger.debug(
            "Indexed %d nodes, %d keyword tokens", len(self._descriptors), len(self._tokens)
        )

    def _category_for(self, segments: tuple[str, ...]) -> GraphCategory | None:
        for length in range(len(segments), 0, -1):
            category = self._categories.get(segments[:length])
            if category is not None:
                return category
        return None

    def _insert(self, descriptor: NodeDescriptor) -> None:
        self._descriptors[descriptor.key] = descriptor
        segments = descriptor.menu_path.split("/")[:-1]

        entry = self.root
        for depth in range(len(segments)):
            child = entry.child(segments[depth])
            if child is None:
                category = self._category_for(tuple(segments[: depth + 1]))
                child = CategoryEntry(
                    segment=segments[depth],
                    path="/".join(segments[: depth + 1]),
                    icon=category.icon if category else None,
                    priority=category.priority if category else self.config.default_priority,
                )
                entry.children.append(child)
            entry = child
        entry.leaves.append(descriptor)

        if descriptor.metadata.searchable:
            words = list(descriptor.metadata.search_keywords) + [descriptor.label]
            for word in words:
                for token in tokenize(word, self.config.min_token_length):
                    self._postings.setdefault(token, set()).add(descriptor.key)

    def _sort(self, entry: CategoryEntry) -> None:
        entry.children.sort(key=lambda c: (c.priority, c.segment))
        entry.leaves.sort(key=lambda d: (d.label, d.key))
        for child in entry.children:
            self._sort(child)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find(self, path: str) -> CategoryEntry | None:
        """Category entry at ``path`` ('' for the root)."""
        entry: CategoryEntry | None = self.root
        for segment in filter(None, path.split("/")):
            entry = entry.child(segment) if entry else None
        return entry

    def get(self, key: str) -> NodeDescriptor | None:
        return self._descriptors.get(key)

    def descriptors(self) -> list[NodeDescriptor]:
        """All indexed descriptors in menu order."""
        return [d for entry in self.root.walk() for d in entry.leaves]

    def _resolve(self, keys: set[str]) -> list[NodeDescriptor]:
        return sorted((self._descriptors[k] for k in keys), key=lambda d: (d.menu_path, d.key))

    def _prefix_keys(self, term: str) -> set[str]:
        keys: set[str] = set()
        start = bisect.bisect_left(self._tokens, term)
        for token in self._tokens[start:]:
            if not token.startswith(term):
                break
            keys |= self._postings[token]
        return keys

    def _substring_keys(self, term: str) -> set[str]:
        keys: set[str] = set()
        for token in self._tokens:
            if term in token:
                keys |= self._postings[token]
        return keys

    def find_prefix(self, term: str) -> list[NodeDescriptor]:
        """Searchable nodes with a keyword token starting with ``term``."""
        term = term.strip().lower()
        return self._resolve(self._prefix_keys(term)) if term else []

    def find_substring(self, term: str) -> list[NodeDescriptor]:
        """Searchable nodes with a keyword token containing ``term``."""
        term = term.strip().lower()
        return self._resolve(self._substring_keys(term)) if term else []

    def search(self, query: str) -> list[NodeDescriptor]:
        """Nodes matching every term of ``query``.

        Nodes where every term matches a token prefix rank ahead of
        nodes that only match by substring.
        """
        terms = tokenize(query)
        if not terms:
            return []

        matched: set[str] | None = None
        prefixed: set[str] | None = None
        for term in terms:
            prefix_keys = self._prefix_keys(term)
            keys = prefix_keys | self._substring_keys(term)
            matched = keys if matched is None else matched & keys
            prefixed = prefix_keys if prefixed is None else prefixed & prefix_keys

        return sorted(
            (self._descriptors[k] for k in matched or ()),
            key=lambda d: (d.key not in (prefixed or set()), d.menu_path, d.key),
        )

    def group_by_category(self) -> dict[str, list[NodeDescriptor]]:
        """Flat mapping of category path to its nodes, in menu order."""
        groups: dict[str, list[NodeDescriptor]] = {}
        for entry in self.root.walk():
            if entry.leaves:
                groups[entry.path or UNCATEGORIZED] = list(entry.leaves)
        return groups

    def to_dict(self) -> dict[str, Any]:
        return self.root.to_dict()

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, key: object) -> bool:
        return key in self._descriptors


def node_color(descriptor: NodeDescriptor) -> Color:
    """Explicit node color, else the palette color of its category."""
    if descriptor.metadata.color:
        try:
            return Color.from_hex(descriptor.metadata.color)
        except ValueError:
            logger.debug("Ignoring invalid color %r on %s", descriptor.metadata.color, descriptor.key)

    for segment in descriptor.menu_path.split("/")[:-1]:
        if segment in CATEGORY_COLORS:
            return CATEGORY_COLORS[segment]
    return DEFAULT_NODE_COLOR


def node_icon(descriptor: NodeDescriptor, index: CategoryIndex | None = None) -> str:
    """Explicit node icon, else its category's icon, else a palette icon."""
    if descriptor.metadata.icon:
        return descriptor.metadata.icon

    if index is not None:
        entry = index.find(descriptor.category_path)
        if entry is not None and entry.icon:
            return entry.icon

    for segment in descriptor.menu_path.split("/")[:-1]:
        if segment in CATEGORY_ICONS:
            return CATEGORY_ICONS[segment]
    return DEFAULT_NODE_ICON
