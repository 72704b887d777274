import threading
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from wordvec.config import Word2VecConfig
from wordvec.data import ContextWindows, Corpus, discard_probabilities, partition_lines
from wordvec.model import SharedWeights, make_model, make_optimizer, train_window

# Training scheduler: N worker threads run asynchronous SGD over disjoint corpus partitions,
# sharing the weight matrices without locks. Only the processed-position counter (which drives
# linear learning-rate decay towards a floor, Mikolov et al.) is synchronised.


def decayed_learning_rate(initial: float, processed: int, total: int, theta: float) -> float:
    """Linear decay: max(initial * (1 - processed / total), initial * theta).

    Args:
        initial: Initial learning rate.
        processed: Positions processed so far.
        total: Positions the whole run will process.
        theta: Floor as a fraction of the initial rate.

    Returns:
        Current learning rate.
    """
    if total <= 0:
        return initial
    return max(initial * (1.0 - processed / total), initial * theta)


class LearningRateSchedule:
    """Shared processed-position counter and the learning rate derived from it.

    `advance` is the only synchronised operation of training: it adds to the counter and
    recomputes the rate under a lock. The returned rates are non-increasing in call order
    and never below initial * theta.

    Attributes:
        initial (float): Initial learning rate.
        total (int): Positions the whole run will process.
        theta (float): Floor fraction.
        processed (int): Positions processed so far.
        history (List[dict]): One {"processed", "lr"} entry per recomputation.
    """

    def __init__(self, initial: float, total: int, theta: float, verbose: bool = False):
        self.initial = initial
        self.total = total
        self.theta = theta
        self.verbose = verbose
        self.processed = 0
        self.history: List[dict] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> float:
        return decayed_learning_rate(self.initial, self.processed, self.total, self.theta)

    def advance(self, n: int) -> float:
        with self._lock:
            self.processed += n
            lr = self.current
            self.history.append({"processed": self.processed, "lr": lr})
            processed = self.processed
        if self.verbose:
            pct = 100.0 * processed / max(1, self.total)
            print(f"processed {processed}/{self.total} ({pct:.1f}%) lr {lr:.6f}")
        return lr


class Embeddings:
    """Per-word vectors produced by training.

    Attributes:
        words (List[str]): Surface forms by id.
        vectors (np.ndarray): Matrix of shape (V, D); row i belongs to words[i].
    """

    def __init__(self, words: Sequence[str], vectors: np.ndarray):
        self.words = list(words)
        self.vectors = vectors
        self.index = {w: i for i, w in enumerate(self.words)}

    def __len__(self) -> int:
        return len(self.words)

    def __contains__(self, word: str) -> bool:
        return word in self.index

    def __getitem__(self, word: str) -> np.ndarray:
        return self.vectors[self.index[word]]

    @property
    def dim(self) -> int:
        return self.vectors.shape[1]

    def as_dict(self) -> Dict[str, np.ndarray]:
        return {w: self.vectors[i] for i, w in enumerate(self.words)}


class Word2Vec:
    """Trainable word2vec model: vocabulary, strategies and shared weights for one run.

    Everything that can fail (bad config, empty input, empty vocabulary) fails here in the
    constructor, before any training starts.

    Attributes:
        config (Word2VecConfig): Settings of the run.
        corpus (Corpus): Encoded input lines.
        vocab (Vocabulary): Retained words and their frequencies.
        model (Cbow | SkipGram): Model strategy.
        optimizer (HierarchicalSoftmax | NegativeSampling): Optimizer strategy.
        weights (SharedWeights): Matrices shared by all workers.
        schedule (LearningRateSchedule): Learning-rate state of the last `train` call.
    """

    def __init__(self, stream: Iterable[str], config: Optional[Word2VecConfig] = None):
        """Read the stream and prepare everything training needs.

        Args:
            stream: Text lines (e.g. an open file); tokens are split on whitespace.
            config: Validated configuration. Defaults to Word2VecConfig().

        Raises:
            ValueError: If the input has no tokens or the filtered vocabulary is empty.
        """
        self.config = config if config is not None else Word2VecConfig()
        cfg = self.config
        self.corpus = Corpus.from_stream(stream, to_lower=cfg.to_lower, min_count=cfg.min_count)
        self.vocab = self.corpus.vocab
        self.model = make_model(cfg.model)
        self.optimizer = make_optimizer(cfg, self.vocab.counts)

        seeds = np.random.SeedSequence(cfg.seed).spawn(cfg.thread_size + 1)
        self._worker_seeds = seeds[1:]
        V = len(self.vocab)
        self.weights = SharedWeights(
            V, self.optimizer.output_rows(V), cfg.dimension, np.random.default_rng(seeds[0])
        )
        self.discard = discard_probabilities(
            self.vocab.counts, self.vocab.total, cfg.subsample_threshold
        )
        self.schedule = self._new_schedule()

    @classmethod
    def from_path(
        cls, path: str, config: Optional[Word2VecConfig] = None, encoding: str = "utf-8"
    ) -> "Word2Vec":
        """Open a text file and build the model from it.

        Raises:
            OSError: If the file cannot be opened.
            ValueError: See __init__.
        """
        with open(path, encoding=encoding) as f:
            return cls(f, config)

    def _new_schedule(self) -> LearningRateSchedule:
        cfg = self.config
        return LearningRateSchedule(
            cfg.initial_learning_rate,
            total=self.corpus.n_tokens * cfg.iteration,
            theta=cfg.theta,
            verbose=cfg.verbose,
        )

    def train(self) -> Embeddings:
        """Run `iteration` epochs on `thread_size` workers and return the word vectors.

        Returns:
            Embeddings backed by the input matrix.
        """
        cfg = self.config
        self.schedule = self._new_schedule()
        partitions = partition_lines(self.corpus.lines, cfg.thread_size)
        if cfg.verbose:
            print(
                f"Vocab size {len(self.vocab)}, corpus tokens {self.corpus.n_tokens}, "
                f"{cfg.model.value}/{cfg.optimizer.value}, {cfg.thread_size} worker(s)"
            )

        errors: List[Exception] = []

        def run(lines: List[np.ndarray], seed: np.random.SeedSequence) -> None:
            try:
                self._worker(lines, np.random.default_rng(seed))
            except Exception as e:  # re-raised in the calling thread after join
                errors.append(e)

        workers = [
            threading.Thread(target=run, args=(part, seed), name=f"w2v-worker-{k}", daemon=True)
            for k, (part, seed) in enumerate(zip(partitions, self._worker_seeds))
        ]
        for t in workers:
            t.start()
        for t in workers:
            t.join()
        if errors:
            raise errors[0]
        if cfg.verbose:
            print(f"Training done, final lr {self.schedule.current:.6f}")
        return self.embeddings

    @property
    def embeddings(self) -> Embeddings:
        return Embeddings(self.vocab.id_to_word, self.weights.W_in)

    def _worker(self, lines: List[np.ndarray], rng: np.random.Generator) -> None:
        cfg = self.config
        schedule = self.schedule
        lr = schedule.current
        pending = 0
        for _ in range(cfg.iteration):
            for line in lines:
                last = -1
                for window in ContextWindows(line, cfg.window, self.discard, rng):
                    # positions skipped by subsampling count as processed too
                    pending += window.position - last
                    last = window.position
                    train_window(window, self.model, self.optimizer, self.weights, lr, rng)
                    if pending >= cfg.batch_size:
                        lr = schedule.advance(pending)
                        pending = 0
                pending += len(line) - 1 - last
                if pending >= cfg.batch_size:
                    lr = schedule.advance(pending)
                    pending = 0
        if pending:
            schedule.advance(pending)


def train_word2vec(stream: Iterable[str], config: Optional[Word2VecConfig] = None) -> Embeddings:
    """Build a Word2Vec over `stream` and train it in one call."""
    return Word2Vec(stream, config).train()
