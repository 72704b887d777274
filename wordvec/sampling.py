from typing import Optional

import numpy as np

# Unigram^0.75 table for negative sampling (Mikolov et al.). Each id owns a contiguous run
# of slots proportional to its smoothed share, so a draw is one uniform index lookup.

DEFAULT_TABLE_SIZE = 10_000_000
POWER = 0.75


def smoothed_distribution(counts: np.ndarray, power: float = POWER) -> np.ndarray:
    """Frequencies raised to `power` and normalised to sum 1.

    Args:
        counts: 1D array of frequencies by id.
        power: Smoothing exponent. Defaults to 0.75.

    Returns:
        1D float64 probabilities, same length as counts.
    """
    probs = np.power(np.asarray(counts, dtype=np.float64), power)
    total = probs.sum()
    if total <= 0:
        raise ValueError("Cannot build a sampling distribution from zero counts")
    return probs / total


class NegativeSampleTable:
    """Discretised sampler over the smoothed unigram distribution.

    Attributes:
        table (np.ndarray): int32 ids; id k occupies a contiguous run of slots.
        probs (np.ndarray): Exact smoothed probabilities the table approximates.
        size (int): Number of slots.
    """

    def __init__(self, counts: np.ndarray, size: int = DEFAULT_TABLE_SIZE, power: float = POWER):
        if size <= 0:
            raise ValueError(f"table size must be > 0, got {size}")
        self.probs = smoothed_distribution(counts, power)
        self.size = int(size)
        # slot boundaries from the cumulative distribution
        bounds = np.rint(np.cumsum(self.probs) * self.size).astype(np.int64)
        bounds[-1] = self.size
        runs = np.diff(np.concatenate(([0], bounds)))
        self.table = np.repeat(np.arange(len(self.probs), dtype=np.int32), runs)
        self.table.setflags(write=False)
        # with a single represented id there is nothing to draw besides it
        self._contrastive = np.count_nonzero(runs) > 1

    def __len__(self) -> int:
        return self.size

    def draw(self, rng: np.random.Generator, n: int = 1) -> np.ndarray:
        """Draw n ids with replacement (no rejection)."""
        return self.table[rng.integers(0, self.size, size=n)].astype(np.int64)

    def sample(
        self,
        rng: np.random.Generator,
        n: int,
        exclude: Optional[int] = None,
    ) -> np.ndarray:
        """Draw n negative ids, redrawing any that equal `exclude`.

        Given the same generator state the result is always the same. When the table only
        holds `exclude` no negatives exist and an empty array is returned.

        Args:
            rng: Random generator.
            n: Number of samples.
            exclude: Id that must not be returned (the true target). Defaults to None.

        Returns:
            1D int64 array of length n (or 0, see above).
        """
        out = self.draw(rng, n)
        if exclude is None:
            return out
        bad = out == exclude
        if bad.any() and not self._contrastive:
            return np.empty(0, dtype=np.int64)
        while bad.any():
            out[bad] = self.draw(rng, int(bad.sum()))
            bad = out == exclude
        return out
