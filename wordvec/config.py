import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional, Union

# Immutable training configuration and its validating factory. Defaults mirror the classic
# word2vec command line (cbow + hierarchical softmax, window 5, lr 0.025).


class ModelKind(Enum):
    """How context vectors are combined into the hidden representation."""

    CBOW = "cbow"
    SKIP_GRAM = "skip-gram"


class OptimizerKind(Enum):
    """Training objective applied to the hidden representation."""

    HIERARCHICAL_SOFTMAX = "hierarchical-softmax"
    NEGATIVE_SAMPLING = "negative-sampling"


_OPTIMIZER_ALIASES = {
    "hs": OptimizerKind.HIERARCHICAL_SOFTMAX,
    "ns": OptimizerKind.NEGATIVE_SAMPLING,
}


def _default_threads() -> int:
    return os.cpu_count() or 1


def parse_model(name: Union[str, ModelKind]) -> ModelKind:
    """Turn a model name into a ModelKind.

    Args:
        name: "cbow", "skip-gram" or a ModelKind.

    Returns:
        The matching ModelKind.

    Raises:
        ValueError: If the name is not a known model.
    """
    if isinstance(name, ModelKind):
        return name
    try:
        return ModelKind(str(name).lower())
    except ValueError:
        allowed = "|".join(m.value for m in ModelKind)
        raise ValueError(f"Invalid model: {name!r} not in {allowed}") from None


def parse_optimizer(name: Union[str, OptimizerKind]) -> OptimizerKind:
    """Turn an optimizer name (or its short alias hs/ns) into an OptimizerKind.

    Args:
        name: "hierarchical-softmax", "negative-sampling", "hs", "ns" or an OptimizerKind.

    Returns:
        The matching OptimizerKind.

    Raises:
        ValueError: If the name is not a known optimizer.
    """
    if isinstance(name, OptimizerKind):
        return name
    key = str(name).lower()
    if key in _OPTIMIZER_ALIASES:
        return _OPTIMIZER_ALIASES[key]
    try:
        return OptimizerKind(key)
    except ValueError:
        allowed = "|".join([o.value for o in OptimizerKind] + list(_OPTIMIZER_ALIASES))
        raise ValueError(f"Invalid optimizer: {name!r} not in {allowed}") from None


@dataclass(frozen=True)
class Word2VecConfig:
    """Validated settings for one training run.

    Build instances with `Word2VecConfig.create` (or `build_config`), which coerces the
    model/optimizer names and checks every numeric range. Direct construction also
    validates, in `__post_init__`.

    Attributes:
        dimension: Embedding size D.
        iteration: Number of epochs each worker runs over its partition.
        min_count: Words seen fewer times than this are dropped from the vocabulary.
        thread_size: Number of concurrent workers.
        window: Half-width of the context window.
        initial_learning_rate: Learning rate at the start of training.
        to_lower: Lowercase tokens before counting.
        model: CBOW or skip-gram.
        optimizer: Hierarchical softmax or negative sampling.
        batch_size: Learning rate is recomputed every this many processed positions.
        max_depth: Hierarchical softmax consults at most this many path steps (0 = all).
        negative_sample_size: Negatives drawn per training example.
        subsample_threshold: Subsampling threshold t (0 disables subsampling).
        theta: Learning rate never drops below initial_learning_rate * theta.
        table_size: Slots in the negative sample table.
        verbose: Print progress while training.
        seed: Seed for every random draw; None gives a fresh, unseeded run.
    """

    dimension: int = 10
    iteration: int = 15
    min_count: int = 5
    thread_size: int = field(default_factory=_default_threads)
    window: int = 5
    initial_learning_rate: float = 0.025
    to_lower: bool = False
    model: ModelKind = ModelKind.CBOW
    optimizer: OptimizerKind = OptimizerKind.HIERARCHICAL_SOFTMAX
    batch_size: int = 10000
    max_depth: int = 100
    negative_sample_size: int = 5
    subsample_threshold: float = 1.0e-3
    theta: float = 1.0e-4
    table_size: int = 10_000_000
    verbose: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        # frozen: normalise string names through object.__setattr__
        object.__setattr__(self, "model", parse_model(self.model))
        object.__setattr__(self, "optimizer", parse_optimizer(self.optimizer))
        for name in _INT_FIELDS:
            value = getattr(self, name)
            _require(
                isinstance(value, int) and not isinstance(value, bool),
                f"{name} must be an integer",
                value,
            )
        if self.seed is not None:
            _require(isinstance(self.seed, int), "seed must be an integer or None", self.seed)
        _require(self.dimension > 0, "dimension must be > 0", self.dimension)
        _require(self.iteration > 0, "iteration must be > 0", self.iteration)
        _require(self.min_count >= 0, "min_count must be >= 0", self.min_count)
        _require(self.thread_size >= 1, "thread_size must be >= 1", self.thread_size)
        _require(self.window >= 1, "window must be >= 1", self.window)
        _require(
            self.initial_learning_rate > 0,
            "initial_learning_rate must be > 0",
            self.initial_learning_rate,
        )
        _require(self.batch_size > 0, "batch_size must be > 0", self.batch_size)
        _require(self.max_depth >= 0, "max_depth must be >= 0", self.max_depth)
        _require(
            self.negative_sample_size > 0,
            "negative_sample_size must be > 0",
            self.negative_sample_size,
        )
        _require(
            self.subsample_threshold >= 0,
            "subsample_threshold must be >= 0",
            self.subsample_threshold,
        )
        _require(0.0 <= self.theta <= 1.0, "theta must be in [0, 1]", self.theta)
        _require(self.table_size > 0, "table_size must be > 0", self.table_size)

    @classmethod
    def create(cls, **options) -> "Word2VecConfig":
        """Validating factory: returns a config or raises ValueError describing the problem.

        Args:
            **options: Any subset of the dataclass fields; model/optimizer may be strings.

        Returns:
            A frozen Word2VecConfig.

        Raises:
            ValueError: On unknown option names, unknown model/optimizer, or out-of-range values.
        """
        unknown = sorted(set(options) - set(cls.__dataclass_fields__))
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(unknown)}")
        return cls(**options)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["model"] = self.model.value
        d["optimizer"] = self.optimizer.value
        return d


_INT_FIELDS = (
    "dimension",
    "iteration",
    "min_count",
    "thread_size",
    "window",
    "batch_size",
    "max_depth",
    "negative_sample_size",
    "table_size",
)


def _require(ok: bool, message: str, value) -> None:
    if not ok:
        raise ValueError(f"{message}, got {value!r}")


def build_config(**options) -> Word2VecConfig:
    """Shorthand for Word2VecConfig.create."""
    return Word2VecConfig.create(**options)
