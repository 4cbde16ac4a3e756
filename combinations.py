import json
import logging
import pathlib
from typing import Iterable, List, Optional, Sequence, Set

import numpy as np

from errors import ConfigurationError
from models import Combination, Component, HookFunction
from sampling import weighted_choice

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 20
KEY_SEPARATOR = "|"


class GeneratedSet:
    """Identity keys of the combinations produced during one run."""

    def __init__(self, keys: Iterable[str] = ()):
        self._keys: Set[str] = set(keys)

    def add(self, key: str) -> None:
        self._keys.add(key)

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)


def combination_key(combination: Combination) -> str:
    """Join the selected item indices into a single token."""
    return KEY_SEPARATOR.join(str(item.index) for item in combination)


def combination_from_indices(
    components: Sequence[Component], indices: Sequence[int]
) -> Combination:
    """Look up one item per component by index."""
    if len(indices) != len(components):
        raise ConfigurationError(
            f"Expected {len(components)} indices, got {len(indices)}"
        )
    combination = []
    for component, index in zip(components, indices):
        if not 0 <= index < len(component.items):
            raise ConfigurationError(
                f"Index {index} out of range for component {component.folder}"
            )
        combination.append(component.items[index])
    return tuple(combination)


def random_combination(
    components: Sequence[Component],
    generated: GeneratedSet,
    hook: Optional[HookFunction] = None,
    generator: Optional[np.random.Generator] = None,
    attempts: int = MAX_ATTEMPTS,
) -> Optional[Combination]:
    """Sample a combination not yet in ``generated``.

    Each component contributes one weighted pick. A hook may replace the
    sampled indices with its own full index list, or return None to keep them.

    Args:
        components: Trait categories in order
        generated: Keys already produced, updated on success
        hook: Optional override for the sampled indices
        generator: Random generator passed to the sampler
        attempts: Number of draws before giving up

    Returns:
        The new combination, or None when every attempt hit a duplicate
    """
    for _ in range(attempts):
        current = tuple(weighted_choice(c.items, generator) for c in components)

        if hook is not None:
            updated = hook([item.index for item in current])
            if updated is not None:
                current = combination_from_indices(components, updated)

        key = combination_key(current)
        if key in generated:
            continue
        generated.add(key)
        return current

    logger.debug("No new combination after %d attempts", attempts)
    return None


def sequential_combination(components: Sequence[Component], index: int) -> Combination:
    """Assign item ``index mod item count`` in every component."""
    return tuple(c.items[index % len(c.items)] for c in components)


def sequential_combinations(components: Sequence[Component], count: int) -> List[Combination]:
    return [sequential_combination(components, i) for i in range(count)]


def load_combinations(
    components: Sequence[Component], path: pathlib.Path
) -> List[Combination]:
    """Replay the combinations recorded in a metadata JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)

    combinations = []
    for record in records:
        if record.get("parts") is None:
            raise ConfigurationError(f"Metadata record without parts in {path}")
        combinations.append(combination_from_indices(components, record["parts"]))
    return combinations


def total_combinations(components: Sequence[Component]) -> int:
    """Get total number of distinct possible combinations."""
    total = 1
    for component in components:
        total = total * len(component.items)
    return total
