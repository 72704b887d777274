from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple

import numpy as np

from wordvec.vocab import Vocabulary, build_vocabulary, iter_token_lines

# Data pipeline: corpus of id lines, frequent-word subsampling, context windows that never
# cross a line boundary, and the split of lines across training workers.


class Corpus:
    """Tokenised corpus as one id array per input line.

    Attributes:
        vocab (Vocabulary): Vocabulary the ids refer to.
        lines (List[np.ndarray]): int64 id arrays; out-of-vocabulary tokens are already dropped.
        n_tokens (int): Total number of ids over all lines.
    """

    def __init__(self, vocab: Vocabulary, lines: List[np.ndarray]):
        self.vocab = vocab
        self.lines = [np.asarray(line, dtype=np.int64) for line in lines if len(line) > 0]
        self.n_tokens = int(sum(len(line) for line in self.lines))

    @classmethod
    def from_stream(
        cls,
        stream: Iterable[str],
        to_lower: bool = False,
        min_count: int = 5,
    ) -> "Corpus":
        """Read a text stream once, build the vocabulary and encode every line.

        Args:
            stream: Iterable of text lines (an open file works).
            to_lower: Lowercase tokens before counting. Defaults to False.
            min_count: Minimum frequency to keep a word. Defaults to 5.

        Returns:
            Corpus over the retained vocabulary.

        Raises:
            ValueError: If the stream has no tokens or no word survives min_count.
        """
        token_lines = list(iter_token_lines(stream, to_lower))
        vocab = build_vocabulary(token_lines, min_count=min_count)
        return cls(vocab, [vocab.encode(tokens) for tokens in token_lines])

    def __len__(self) -> int:
        return len(self.lines)


def discard_probability(ratio: float, threshold: float) -> float:
    """Probability of dropping one occurrence of a word with frequency ratio `ratio`.

    max(0, 1 - sqrt(t/r) - t/r). Zero at r == t and always below 1. A threshold of 0
    disables subsampling.

    Args:
        ratio: frequency(word) / corpus size.
        threshold: Subsampling threshold t.

    Returns:
        Discard probability in [0, 1).
    """
    if threshold <= 0 or ratio <= 0:
        return 0.0
    x = threshold / ratio
    return max(0.0, float(1.0 - np.sqrt(x) - x))


def discard_probabilities(counts: np.ndarray, total: int, threshold: float) -> np.ndarray:
    """Vectorised discard_probability for every id.

    Args:
        counts: Frequency by id.
        total: Corpus size (sum of frequencies).
        threshold: Subsampling threshold t.

    Returns:
        float64 array, same length as counts.
    """
    counts = np.asarray(counts, dtype=np.float64)
    if threshold <= 0 or total <= 0:
        return np.zeros(len(counts))
    ratio = np.clip(counts / total, 1e-300, None)
    x = threshold / ratio
    return np.maximum(0.0, 1.0 - np.sqrt(x) - x)


class Window(NamedTuple):
    """One retained position of a line and its surrounding context ids."""

    position: int
    target: int
    context: np.ndarray


class ContextWindows:
    """Lazy, restartable sequence of context windows over one line of ids.

    Each iteration re-draws subsampling decisions, so the same word can be kept on one
    pass and dropped on the next. Discarding only skips the position as a target; the
    context of a retained position is every id within `window` of it on the same line.

    Attributes:
        ids (np.ndarray): Ids of the line.
        window (int): Half-window size.
        discard (Optional[np.ndarray]): Per-id discard probability; None keeps everything.
        rng (np.random.Generator): Source for subsampling draws.
    """

    def __init__(
        self,
        ids: np.ndarray,
        window: int,
        discard: Optional[np.ndarray] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.ids = np.asarray(ids, dtype=np.int64)
        self.window = window
        self.discard = discard
        self.rng = rng if rng is not None else np.random.default_rng()

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[Window]:
        n = len(self.ids)
        if self.discard is not None:
            dropped = self.rng.random(n) < self.discard[self.ids]
        else:
            dropped = np.zeros(n, dtype=bool)
        for i in range(n):
            if dropped[i]:
                continue
            start = max(0, i - self.window)
            end = min(n, i + self.window + 1)
            context = np.concatenate((self.ids[start:i], self.ids[i + 1 : end]))
            yield Window(i, int(self.ids[i]), context)


def cbow_examples(windows: Iterable[Window]) -> Iterator[Tuple[int, np.ndarray]]:
    """CBOW: one (target, whole context) example per window with a non-empty context."""
    for w in windows:
        if len(w.context):
            yield w.target, w.context


def skipgram_examples(windows: Iterable[Window]) -> Iterator[Tuple[int, int]]:
    """Skip-gram: one (target, single context word) example per context word."""
    for w in windows:
        for c in w.context:
            yield w.target, int(c)


def partition_lines(lines: List[np.ndarray], parts: int) -> List[List[np.ndarray]]:
    """Split lines into `parts` contiguous groups with roughly equal token counts.

    Lines are never split, so a partition may be empty when there are fewer lines
    than parts.

    Args:
        lines: Id arrays, one per line.
        parts: Number of partitions (>= 1).

    Returns:
        List of `parts` lists of lines.
    """
    if parts < 1:
        raise ValueError(f"parts must be >= 1, got {parts}")
    sizes = np.array([len(line) for line in lines], dtype=np.int64)
    total = int(sizes.sum())
    if total == 0:
        return [list(lines)] + [[] for _ in range(parts - 1)]
    # line k goes to the partition its midpoint falls into
    mid = np.cumsum(sizes) - sizes / 2.0
    owner = np.minimum((mid * parts / total).astype(np.int64), parts - 1)
    groups: List[List[np.ndarray]] = [[] for _ in range(parts)]
    for line, p in zip(lines, owner):
        groups[int(p)].append(line)
    return groups
