from collections import Counter
from typing import Dict, Iterable, Iterator, List, Tuple

import numpy as np

# Vocabulary: whitespace tokenisation, frequency counting, min-count filter, dense ids in
# first-seen order. Built once and read-only afterwards (shared by all training workers).


def tokenize_line(line: str, to_lower: bool = False) -> List[str]:
    """Split a line on whitespace, optionally lowercasing every token.

    Args:
        line: One line of raw text.
        to_lower: Lowercase tokens. Defaults to False.

    Returns:
        List of token strings (empty for a blank line).
    """
    if to_lower:
        line = line.lower()
    return line.split()


def iter_token_lines(stream: Iterable[str], to_lower: bool = False) -> Iterator[List[str]]:
    """Yield the token list of each non-empty line of a text stream."""
    for line in stream:
        tokens = tokenize_line(line, to_lower)
        if tokens:
            yield tokens


class Vocabulary:
    """Bidirectional word <-> id mapping plus per-id frequencies.

    Ids are dense over [0, size). The object is never mutated after construction.

    Attributes:
        id_to_word (List[str]): Surface form by id.
        word_to_id (Dict[str, int]): Id by surface form.
        counts (np.ndarray): Frequency by id, shape (size,), int64.
    """

    def __init__(self, words: List[str], counts: Iterable[int]):
        self.id_to_word = list(words)
        self.word_to_id: Dict[str, int] = {w: i for i, w in enumerate(self.id_to_word)}
        self.counts = np.asarray(list(counts), dtype=np.int64)
        if len(self.word_to_id) != len(self.id_to_word):
            raise ValueError("Duplicate words in vocabulary")
        if self.counts.shape != (len(self.id_to_word),):
            raise ValueError("counts must have one entry per word")
        self.counts.setflags(write=False)

    def __len__(self) -> int:
        return len(self.id_to_word)

    def __contains__(self, word: str) -> bool:
        return word in self.word_to_id

    @property
    def size(self) -> int:
        return len(self.id_to_word)

    @property
    def total(self) -> int:
        """Sum of retained frequencies (corpus size seen by training)."""
        return int(self.counts.sum())

    def id_of(self, word: str) -> int:
        return self.word_to_id[word]

    def word_of(self, idx: int) -> str:
        return self.id_to_word[idx]

    def freq(self, idx: int) -> int:
        return int(self.counts[idx])

    def encode(self, tokens: Iterable[str]) -> np.ndarray:
        """Map tokens to ids, silently dropping out-of-vocabulary tokens.

        Args:
            tokens: Token strings.

        Returns:
            1D int64 array of ids.
        """
        ids = [self.word_to_id[t] for t in tokens if t in self.word_to_id]
        return np.array(ids, dtype=np.int64)


def count_words(token_lines: Iterable[List[str]]) -> Tuple[Counter, List[str]]:
    """Count tokens and remember the order in which each word was first seen.

    Args:
        token_lines: Iterable of token lists.

    Returns:
        Tuple (counter, first_seen) where first_seen lists every distinct word once.
    """
    cnt: Counter = Counter()
    first_seen: List[str] = []
    for tokens in token_lines:
        for w in tokens:
            if w not in cnt:
                first_seen.append(w)
            cnt[w] += 1
    return cnt, first_seen


def build_vocabulary(
    token_lines: Iterable[List[str]],
    min_count: int = 5,
) -> Vocabulary:
    """Build a Vocabulary from tokenised lines in a single pass.

    Words with frequency below min_count are discarded; survivors get sequential ids
    in order of first occurrence, so a fixed input always yields the same ids.

    Args:
        token_lines: Iterable of token lists (already lowercased if requested).
        min_count: Minimum frequency to keep a word. Defaults to 5.

    Returns:
        Vocabulary over the retained words.

    Raises:
        ValueError: If no word reaches min_count (including an empty input).
    """
    cnt, first_seen = count_words(token_lines)
    if not cnt:
        raise ValueError("No tokens in input")
    kept = [w for w in first_seen if cnt[w] >= min_count]
    if not kept:
        raise ValueError(
            f"Empty vocabulary: none of {len(cnt)} distinct words occurs at least "
            f"{min_count} times"
        )
    return Vocabulary(kept, [cnt[w] for w in kept])
