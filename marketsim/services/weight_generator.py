"""Weight vectors for bot strategy profiles."""
from typing import List, Optional
import random


class WeightGenerator:
    """Draws normalized, descending-sorted weight vectors."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def generate(self, count: int) -> List[float]:
        """Return `count` positive weights, largest first, summing to 1."""
        if count < 0:
            raise ValueError(f"Weight count must be non-negative, got {count}")
        if count == 0:
            return []
        # random() is in [0, 1); redraw exact zeros so every weight is positive
        samples = []
        while len(samples) < count:
            sample = self._rng.random()
            if sample > 0:
                samples.append(sample)
        samples.sort(reverse=True)
        total = sum(samples)
        return [sample / total for sample in samples]
