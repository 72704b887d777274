import heapq
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

# Huffman coding tree for hierarchical softmax. Frequent words get short root-to-leaf paths,
# so one update costs O(log V) dot products instead of O(V).


@dataclass
class HuffmanNode:
    """A node of the coding tree.

    Attributes:
        weight: Sum of the frequencies of all leaves below this node.
        word_id: Vocabulary id for a leaf, None for an internal node.
        index: Row of the output matrix for an internal node (creation order), None for a leaf.
        left: Child reached with bit 0 (the lighter node at the merge).
        right: Child reached with bit 1.
    """

    weight: int
    word_id: Optional[int] = None
    index: Optional[int] = None
    left: Optional["HuffmanNode"] = None
    right: Optional["HuffmanNode"] = None

    def is_leaf(self) -> bool:
        return self.word_id is not None


class HuffmanTree:
    """Strict binary tree with one leaf per word and V - 1 internal nodes.

    Each word has a path: the internal-node indices from the root down to its leaf, and
    the bit taken at each of those nodes (0 = left, 1 = right).

    Attributes:
        root (HuffmanNode): Root of the tree (the single leaf when V == 1).
        vocab_size (int): Number of leaves V.
        num_internal (int): Number of internal nodes, V - 1.
        points (List[np.ndarray]): Per word, internal-node indices from the root.
        codes (List[np.ndarray]): Per word, bits (uint8) matching `points`.
    """

    def __init__(self, root: HuffmanNode, vocab_size: int, num_internal: int):
        self.root = root
        self.vocab_size = vocab_size
        self.num_internal = num_internal
        self.points: List[np.ndarray] = [np.empty(0, dtype=np.int64)] * vocab_size
        self.codes: List[np.ndarray] = [np.empty(0, dtype=np.uint8)] * vocab_size
        self._assign_paths()

    @classmethod
    def build(cls, frequencies: Iterable[int]) -> "HuffmanTree":
        """Greedy Huffman construction over per-id frequencies.

        The two lightest nodes are merged until one node is left. Ties are broken by
        insertion order (ids first, then merged nodes in creation order), so the same
        frequencies in the same order always give the same tree.

        Args:
            frequencies: Frequency of each id, in id order.

        Returns:
            The built tree.

        Raises:
            ValueError: If frequencies is empty.
        """
        freqs = [int(f) for f in frequencies]
        if not freqs:
            raise ValueError("Cannot build Huffman tree from empty frequencies")
        heap: List[Tuple[int, int, HuffmanNode]] = [
            (f, i, HuffmanNode(weight=f, word_id=i)) for i, f in enumerate(freqs)
        ]
        heapq.heapify(heap)
        seq = len(heap)
        n_internal = 0
        while len(heap) > 1:
            w0, _, lo = heapq.heappop(heap)
            w1, _, hi = heapq.heappop(heap)
            parent = HuffmanNode(weight=w0 + w1, index=n_internal, left=lo, right=hi)
            n_internal += 1
            heapq.heappush(heap, (parent.weight, seq, parent))
            seq += 1
        return cls(heap[0][2], vocab_size=len(freqs), num_internal=n_internal)

    def _assign_paths(self) -> None:
        # iterative DFS; recursion depth can reach V - 1 for skewed frequencies
        stack = [(self.root, [], [])]
        while stack:
            node, path, code = stack.pop()
            if node.is_leaf():
                self.points[node.word_id] = np.array(path, dtype=np.int64)
                self.codes[node.word_id] = np.array(code, dtype=np.uint8)
                continue
            stack.append((node.right, path + [node.index], code + [1]))
            stack.append((node.left, path + [node.index], code + [0]))

    def path(self, word_id: int, max_depth: int = 0) -> Tuple[np.ndarray, np.ndarray]:
        """Return (node indices, bits) from the root to `word_id`.

        Paths longer than max_depth are cut after the first max_depth steps from the root.
        This is an intentional approximation for very deep (rare) words, not an error.

        Args:
            word_id: Vocabulary id.
            max_depth: Maximum number of steps to return; 0 means the full path.

        Returns:
            Tuple (points, codes) of equal length.
        """
        points, codes = self.points[word_id], self.codes[word_id]
        if max_depth > 0 and len(points) > max_depth:
            return points[:max_depth], codes[:max_depth]
        return points, codes

    def code(self, word_id: int) -> str:
        """Bit string of a word, e.g. "01"."""
        return "".join(str(int(b)) for b in self.codes[word_id])
