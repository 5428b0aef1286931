"""
Compressed trie (radix tree) over canonical vocabulary terms.

Nodes live in an arena of parallel lists and refer to each other by integer
index. Node 0 is the root and carries the empty label. Every other node
carries a non-empty edge label; the concatenation of labels from the root
spells the key of that node.
"""
import json
import logging
from collections import deque
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .. import config
from ..errors import ConfigurationError
from ..models import VocabTerm

logger = logging.getLogger(__name__)

ROOT = 0


def _common_prefix_length(left: str, right: str) -> int:
    length = min(len(left), len(right))
    for i in range(length):
        if left[i] != right[i]:
            return i
    return length


class CompressedTrie:
    """
    Radix tree keyed by canonical term strings, each terminal holding a VocabTerm.

    Built by a single writer, then read concurrently.
    """

    FORMAT = "ptscreen.trie"
    VERSION = 1

    def __init__(self):
        self._labels: List[str] = [""]
        self._children: List[Dict[str, int]] = [{}]
        self._values: List[Optional[VocabTerm]] = [None]
        self._term_count = 0

    # ═══════════════════════════════════════════════════════════════
    # BUILDING
    # ═══════════════════════════════════════════════════════════════

    def _new_node(self, label: str, value: Optional[VocabTerm] = None) -> int:
        self._labels.append(label)
        self._children.append({})
        self._values.append(value)
        return len(self._labels) - 1

    def insert(self, term: str, value: VocabTerm):
        """
        Insert or overwrite a term.

        When the term shares only part of an existing edge label, the edge is
        split at the divergence point into an intermediate branching node.

        Args:
            term: Canonical term (non-empty)
            value: Vocabulary entry stored at the terminal node

        Raises:
            ValueError: If term is empty
        """
        if not term:
            raise ValueError("Cannot insert an empty term")

        node, rest = ROOT, term
        while rest:
            child = self._children[node].get(rest[0])
            if child is None:
                self._children[node][rest[0]] = self._new_node(rest, value)
                self._term_count += 1
                return

            label = self._labels[child]
            common = _common_prefix_length(label, rest)
            if common < len(label):
                middle = self._new_node(label[:common])
                self._labels[child] = label[common:]
                self._children[middle][label[common]] = child
                self._children[node][rest[0]] = middle
                child = middle

            node, rest = child, rest[common:]

        if self._values[node] is None:
            self._term_count += 1
        self._values[node] = value

    # ═══════════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════════

    def _locate(self, key: str) -> Optional[Tuple[int, bool]]:
        """
        Walk down the edges spelled by key.

        Returns:
            (node, exact) where exact is False when key ends inside the edge
            leading to node, or None when key leaves the tree
        """
        node, depth = ROOT, 0
        while depth < len(key):
            child = self._children[node].get(key[depth])
            if child is None:
                return None
            label = self._labels[child]
            remaining = key[depth:]
            if remaining.startswith(label):
                node, depth = child, depth + len(label)
            elif label.startswith(remaining):
                return child, False
            else:
                return None
        return node, True

    def lookup_exact(self, term: str) -> Optional[VocabTerm]:
        """Value stored under term, or None."""
        if not term:
            return None
        located = self._locate(term)
        if located is None or not located[1]:
            return None
        return self._values[located[0]]

    def __contains__(self, term: str) -> bool:
        return self.lookup_exact(term) is not None

    def __len__(self) -> int:
        return self._term_count

    def lookup_prefix(self, prefix: str, limit: Optional[int] = None) -> List[VocabTerm]:
        """
        Terms starting with prefix, ranked by descending weight then frequency.

        Collection stops as soon as ``limit`` terms are found, so with a limit
        the result is the best-ranked subset of the terms visited, not
        necessarily of all matching terms.

        Args:
            prefix: Key prefix ('' matches every term)
            limit: Maximum number of results (config default if None)
        """
        if limit is None:
            limit = config.PREFIX_LOOKUP_LIMIT
        if limit <= 0:
            return []

        located = self._locate(prefix)
        if located is None:
            return []

        found = []
        stack = [located[0]]
        while stack and len(found) < limit:
            node = stack.pop()
            if self._values[node] is not None:
                found.append(self._values[node])
            # Reverse-sorted push so lower first characters are popped first
            for first in sorted(self._children[node], reverse=True):
                stack.append(self._children[node][first])

        found.sort(key=lambda value: (-value.weight, -value.frequency))
        return found

    def suggest(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        """Autocomplete: term strings for a prefix, best first."""
        return [value.term for value in self.lookup_prefix(prefix, limit)]

    def fuzzy_matches(self,
                      query: str,
                      max_edit_distance: int = 1,
                      limit: Optional[int] = None) -> List[Tuple[VocabTerm, int]]:
        """
        Terms within a Levenshtein distance of query, with their distances.

        The search runs in tiers of increasing distance budget and stops after
        the first tier that fills ``limit``. Inside a tier the tree is walked
        with an explicit stack carrying one edit-distance row per node; a
        branch is abandoned as soon as every cell of its row exceeds the budget.

        Args:
            query: Canonical query string
            max_edit_distance: Budget in insertions, deletions and substitutions
            limit: Maximum number of results (config default if None)

        Returns:
            (value, distance) pairs ranked by ascending distance, then
            descending weight, then term

        Raises:
            ValueError: If the budget is negative or above FUZZY_MAX_DISTANCE_LIMIT
        """
        if max_edit_distance < 0 or max_edit_distance > config.FUZZY_MAX_DISTANCE_LIMIT:
            raise ValueError(
                f"max_edit_distance must be between 0 and {config.FUZZY_MAX_DISTANCE_LIMIT}, "
                f"got {max_edit_distance}"
            )
        if limit is None:
            limit = config.FUZZY_LOOKUP_LIMIT
        if limit <= 0:
            return []

        best: Dict[int, int] = {}
        for budget in range(max_edit_distance + 1):
            for node, distance in self._fuzzy_walk(query, budget):
                if node not in best or distance < best[node]:
                    best[node] = distance
            if len(best) >= limit:
                break

        ranked = sorted(
            ((self._values[node], distance) for node, distance in best.items()),
            key=lambda pair: (pair[1], -pair[0].weight, pair[0].term),
        )
        return ranked[:limit]

    def _fuzzy_walk(self, query: str, budget: int) -> Iterator[Tuple[int, int]]:
        first_row = list(range(len(query) + 1))
        if self._values[ROOT] is not None and first_row[-1] <= budget:
            yield ROOT, first_row[-1]

        stack = [(ROOT, first_row)]
        while stack:
            node, row = stack.pop()
            for first in sorted(self._children[node], reverse=True):
                child = self._children[node][first]
                child_row = row
                pruned = False
                for char in self._labels[child]:
                    previous = child_row
                    child_row = [previous[0] + 1]
                    for i in range(1, len(query) + 1):
                        cost = 0 if query[i - 1] == char else 1
                        child_row.append(min(
                            child_row[i - 1] + 1,
                            previous[i] + 1,
                            previous[i - 1] + cost,
                        ))
                    if min(child_row) > budget:
                        pruned = True
                        break
                if pruned:
                    continue
                if self._values[child] is not None and child_row[-1] <= budget:
                    yield child, child_row[-1]
                stack.append((child, child_row))

    def lookup_fuzzy(self,
                     query: str,
                     max_edit_distance: int = 1,
                     limit: Optional[int] = None) -> List[VocabTerm]:
        """Values within max_edit_distance of query, closest first."""
        return [value for value, _ in self.fuzzy_matches(query, max_edit_distance, limit)]

    # ═══════════════════════════════════════════════════════════════
    # INSPECTION
    # ═══════════════════════════════════════════════════════════════

    def items(self) -> Iterator[Tuple[str, VocabTerm]]:
        """(key, value) pairs in lexicographic order of first characters."""
        stack = [(ROOT, "")]
        while stack:
            node, key = stack.pop()
            if self._values[node] is not None:
                yield key, self._values[node]
            for first in sorted(self._children[node], reverse=True):
                child = self._children[node][first]
                stack.append((child, key + self._labels[child]))

    def stats(self) -> Dict[str, Union[int, float]]:
        """Size and shape figures of the tree."""
        node_count = len(self._labels)
        edge_count = sum(len(children) for children in self._children)
        max_depth = 0
        stack = [(ROOT, 0)]
        while stack:
            node, depth = stack.pop()
            max_depth = max(max_depth, depth)
            for child in self._children[node].values():
                stack.append((child, depth + 1))
        label_chars = sum(len(label) for label in self._labels)
        return {
            'terms': self._term_count,
            'nodes': node_count,
            'edges': edge_count,
            'max_depth': max_depth,
            'avg_label_length': label_chars / edge_count if edge_count else 0.0,
        }

    # ═══════════════════════════════════════════════════════════════
    # PERSISTENCE
    # ═══════════════════════════════════════════════════════════════

    def serialize(self) -> bytes:
        """Encode the arena (labels, child indices, values) as a JSON blob."""
        document = {
            'format': self.FORMAT,
            'version': self.VERSION,
            'term_count': self._term_count,
            'labels': self._labels,
            'children': [sorted(children.values()) for children in self._children],
            'values': [value.model_dump(mode='json') if value is not None else None
                       for value in self._values],
        }
        return json.dumps(document, ensure_ascii=False, separators=(',', ':')).encode('utf-8')

    @classmethod
    def deserialize(cls, blob: Union[bytes, str]) -> "CompressedTrie":
        """
        Rebuild a trie from ``serialize()`` output.

        Raises:
            ConfigurationError: If the blob is not a structurally valid trie
        """
        try:
            document = json.loads(blob)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Lexicon blob is not valid JSON: {exc}") from exc

        if not isinstance(document, dict):
            raise ConfigurationError("Lexicon blob must be a JSON object")
        if document.get('format') != cls.FORMAT or document.get('version') != cls.VERSION:
            raise ConfigurationError(
                f"Unsupported lexicon blob format {document.get('format')!r} "
                f"version {document.get('version')!r}"
            )

        labels = document.get('labels')
        children = document.get('children')
        values = document.get('values')
        if not isinstance(labels, list) or not isinstance(children, list) or not isinstance(values, list):
            raise ConfigurationError("Lexicon blob must carry 'labels', 'children' and 'values' lists")

        node_count = len(labels)
        if node_count == 0 or len(children) != node_count or len(values) != node_count:
            raise ConfigurationError("Lexicon blob arrays are empty or of unequal length")
        if labels[ROOT] != "":
            raise ConfigurationError("Lexicon root label must be empty")
        if any(not isinstance(label, str) or (index and not label) for index, label in enumerate(labels)):
            raise ConfigurationError("Lexicon node labels must be non-empty strings")

        trie = cls()
        trie._labels = list(labels)
        trie._children = []
        parents = [None] * node_count
        for index, child_list in enumerate(children):
            if not isinstance(child_list, list):
                raise ConfigurationError(f"Children of node {index} must be a list")
            mapping = {}
            for child in child_list:
                if not isinstance(child, int) or isinstance(child, bool) or not 0 < child < node_count:
                    raise ConfigurationError(f"Node {index} has an invalid child index {child!r}")
                if parents[child] is not None:
                    raise ConfigurationError(f"Node {child} has more than one parent")
                parents[child] = index
                first = labels[child][0]
                if first in mapping:
                    raise ConfigurationError(f"Node {index} has two edges starting with {first!r}")
                mapping[first] = child
            trie._children.append(mapping)

        trie._values = []
        for index, raw in enumerate(values):
            if raw is None:
                if index != ROOT and len(trie._children[index]) < 2:
                    raise ConfigurationError(f"Node {index} is neither terminal nor branching")
                trie._values.append(None)
                continue
            if index == ROOT:
                raise ConfigurationError("Lexicon root cannot hold a value")
            try:
                trie._values.append(VocabTerm.model_validate(raw))
            except PydanticValidationError as exc:
                raise ConfigurationError(f"Node {index} holds an invalid vocabulary term: {exc}") from exc

        reachable = 0
        queue = deque([ROOT])
        seen = {ROOT}
        while queue:
            node = queue.popleft()
            reachable += 1
            for child in trie._children[node].values():
                if child in seen:
                    raise ConfigurationError(f"Node {child} is reachable twice")
                seen.add(child)
                queue.append(child)
        if reachable != node_count:
            raise ConfigurationError(f"{node_count - reachable} lexicon nodes are unreachable from the root")

        trie._term_count = sum(1 for value in trie._values if value is not None)
        if document.get('term_count') != trie._term_count:
            raise ConfigurationError(
                f"Lexicon blob declares {document.get('term_count')} terms but holds {trie._term_count}"
            )

        logger.debug(f"Deserialized trie with {trie._term_count} terms and {node_count} nodes")
        return trie
