from typing import Iterator, Tuple, Union

import numpy as np

from wordvec.config import ModelKind, OptimizerKind, Word2VecConfig
from wordvec.data import Window, cbow_examples, skipgram_examples
from wordvec.huffman import HuffmanTree
from wordvec.sampling import NegativeSampleTable

# Model strategies (how context forms the hidden vector h and where its gradient goes) and
# optimizer strategies (loss against Huffman nodes or negative samples). Plain NumPy, no
# autograd: every update is written out by hand and applied in place to SharedWeights.


def _sigmoid(x: np.ndarray) -> np.ndarray:
    """Numerically stable sigmoid; clips input to avoid overflow in exp.

    Args:
        x: Input array (any shape).

    Returns:
        Sigmoid of x, same shape; values in (0, 1).
    """
    x = np.clip(x, -500.0, 500.0)
    return 1.0 / (1.0 + np.exp(-x))


class SharedWeights:
    """Input and output matrices shared by every training worker.

    Concurrency contract: workers read and write rows of W_in and W_out with no locking
    at all (Hogwild-style asynchronous SGD). Two workers touching the same row at the
    same time may lose or mix an update; the optimisation tolerates these stale reads,
    so results are reproducible only with a single worker.

    Attributes:
        W_in (np.ndarray): Word (input) vectors, shape (V, D); the final embeddings.
        W_out (np.ndarray): Output vectors, shape (rows, D): one per Huffman internal node
            for hierarchical softmax, one per word for negative sampling.
    """

    def __init__(self, vocab_size: int, output_rows: int, dim: int, rng: np.random.Generator):
        """Random uniform input vectors in [-0.5/D, 0.5/D), zero output vectors.

        Args:
            vocab_size: Number of words V.
            output_rows: Rows of the output matrix (at least 1 row is allocated).
            dim: Embedding dimension D.
            rng: Generator for the input initialisation.
        """
        self.W_in = (rng.random((vocab_size, dim)) - 0.5) / dim
        self.W_out = np.zeros((max(1, output_rows), dim), dtype=np.float64)


class HierarchicalSoftmax:
    """Binary decisions along the Huffman path of the true word.

    For each (node, bit) on the path: f = sigmoid(h . v_node), g = ((1 - bit) - f) * lr;
    h's gradient accumulates g * v_node and v_node += g * h.
    """

    kind = OptimizerKind.HIERARCHICAL_SOFTMAX

    def __init__(self, tree: HuffmanTree, max_depth: int = 0):
        self.tree = tree
        self.max_depth = max_depth

    def output_rows(self, vocab_size: int) -> int:
        return self.tree.num_internal

    def update(
        self,
        hidden: np.ndarray,
        word: int,
        lr: float,
        weights: SharedWeights,
        rng: np.random.Generator,
    ) -> np.ndarray:
        points, codes = self.tree.path(word, self.max_depth)
        if len(points) == 0:
            return np.zeros_like(hidden)
        rows = weights.W_out[points]
        f = _sigmoid(rows @ hidden)
        g = (1.0 - codes - f) * lr
        # points on one path are distinct, so a fancy-index add is safe
        weights.W_out[points] += np.outer(g, hidden)
        return g @ rows


class NegativeSampling:
    """Logistic loss on the true word (label 1) against sampled negatives (label 0)."""

    kind = OptimizerKind.NEGATIVE_SAMPLING

    def __init__(self, table: NegativeSampleTable, sample_size: int = 5):
        self.table = table
        self.sample_size = sample_size

    def output_rows(self, vocab_size: int) -> int:
        return vocab_size

    def update(
        self,
        hidden: np.ndarray,
        word: int,
        lr: float,
        weights: SharedWeights,
        rng: np.random.Generator,
    ) -> np.ndarray:
        negatives = self.table.sample(rng, self.sample_size, exclude=word)
        targets = np.concatenate(([word], negatives)).astype(np.int64)
        labels = np.zeros(len(targets))
        labels[0] = 1.0
        rows = weights.W_out[targets]
        f = _sigmoid(rows @ hidden)
        g = (labels - f) * lr
        # negatives can repeat
        np.add.at(weights.W_out, targets, np.outer(g, hidden))
        return g @ rows


Optimizer = Union[HierarchicalSoftmax, NegativeSampling]


class Cbow:
    """Continuous bag of words: h is the mean of the context vectors.

    The gradient with respect to h is divided by the context size and added to every
    context word's input vector (the exact gradient of the average).
    """

    kind = ModelKind.CBOW

    def examples(self, windows) -> Iterator[Tuple[int, np.ndarray]]:
        return cbow_examples(windows)

    def update(
        self,
        example: Tuple[int, np.ndarray],
        weights: SharedWeights,
        optimizer: Optimizer,
        lr: float,
        rng: np.random.Generator,
    ) -> None:
        target, context = example
        hidden = weights.W_in[context].mean(axis=0)
        grad = optimizer.update(hidden, target, lr, weights, rng)
        np.add.at(weights.W_in, context, grad / len(context))


class SkipGram:
    """Skip-gram: h is the target word's own vector; the optimizer predicts one context word."""

    kind = ModelKind.SKIP_GRAM

    def examples(self, windows) -> Iterator[Tuple[int, int]]:
        return skipgram_examples(windows)

    def update(
        self,
        example: Tuple[int, int],
        weights: SharedWeights,
        optimizer: Optimizer,
        lr: float,
        rng: np.random.Generator,
    ) -> None:
        target, context_word = example
        hidden = weights.W_in[target].copy()
        grad = optimizer.update(hidden, context_word, lr, weights, rng)
        weights.W_in[target] += grad


Model = Union[Cbow, SkipGram]


def make_model(kind: ModelKind) -> Model:
    if kind is ModelKind.CBOW:
        return Cbow()
    if kind is ModelKind.SKIP_GRAM:
        return SkipGram()
    raise ValueError(f"Invalid model: {kind!r}")


def make_optimizer(config: Word2VecConfig, counts: np.ndarray) -> Optimizer:
    """Build the optimizer strategy and its frequency structure (Huffman tree or sample table).

    Args:
        config: Validated configuration.
        counts: Frequency by vocabulary id.

    Returns:
        HierarchicalSoftmax or NegativeSampling.
    """
    if config.optimizer is OptimizerKind.HIERARCHICAL_SOFTMAX:
        return HierarchicalSoftmax(HuffmanTree.build(counts), max_depth=config.max_depth)
    if config.optimizer is OptimizerKind.NEGATIVE_SAMPLING:
        table = NegativeSampleTable(counts, size=config.table_size)
        return NegativeSampling(table, sample_size=config.negative_sample_size)
    raise ValueError(f"Invalid optimizer: {config.optimizer!r}")


def train_window(
    window: Window,
    model: Model,
    optimizer: Optimizer,
    weights: SharedWeights,
    lr: float,
    rng: np.random.Generator,
) -> int:
    """Apply every example of one context window; returns the number of examples."""
    n = 0
    for example in model.examples((window,)):
        model.update(example, weights, optimizer, lr, rng)
        n += 1
    return n
