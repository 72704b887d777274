from typing import List, Tuple

import numpy as np

from wordvec.train import Embeddings

# Quick inspection of trained vectors: cosine similarity and k nearest neighbours.


def l2_normalize(X: np.ndarray, axis: int = -1) -> np.ndarray:
    """L2-normalize array along the given axis (zero vectors get divisor 1).

    Args:
        X: Input array.
        axis: Axis along which to normalize. Defaults to -1.

    Returns:
        Normalized array, same shape as X.
    """
    norm = np.linalg.norm(X, axis=axis, keepdims=True)
    norm = np.where(norm > 0, norm, 1.0)
    return X / norm


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    return float(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b) + 1e-10))


def similarity(embeddings: Embeddings, w1: str, w2: str) -> float:
    """Cosine similarity of two words; KeyError if either is unknown."""
    return cosine_similarity(embeddings[w1], embeddings[w2])


def most_similar(embeddings: Embeddings, word: str, k: int = 5) -> List[Tuple[str, float]]:
    """The k words closest to `word` by cosine similarity, excluding the word itself.

    Args:
        embeddings: Trained embeddings.
        word: Query word.
        k: Number of neighbours. Defaults to 5.

    Returns:
        List of (word, similarity), most similar first.

    Raises:
        KeyError: If word is not in the vocabulary.
    """
    i = embeddings.index[word]
    E = l2_normalize(embeddings.vectors, axis=1)
    sims = E @ E[i]
    sims[i] = -np.inf
    k = min(k, len(embeddings) - 1)
    nearest = np.argsort(-sims, kind="stable")[:k]
    return [(embeddings.words[j], float(sims[j])) for j in nearest]


def print_nearest(embeddings: Embeddings, query_words: List[str], k: int = 5) -> None:
    for w in query_words:
        if w not in embeddings:
            continue
        nn_str = ", ".join(f"{u}({s:.3f})" for u, s in most_similar(embeddings, w, k))
        print(f"  '{w}' -> {nn_str}")
