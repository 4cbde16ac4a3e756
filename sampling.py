from typing import Optional, Sequence

import numpy as np

from models import Item

# Initialize random number generator
rng = np.random.default_rng()


def weighted_choice(items: Sequence[Item], generator: Optional[np.random.Generator] = None) -> Item:
    """Pick one item with probability proportional to its weight.

    A uniform draw in ``[0, total)`` is located in the prefix sums of the
    weights; ``np.searchsorted`` with side='right' returns the first item whose
    prefix sum exceeds the draw, so zero-weight items are never hit.

    Args:
        items: Candidates, each with a non-negative ``weight``
        generator: Random generator, the module one when omitted

    Returns:
        The selected item. When all weights are zero the last item is returned.
    """
    generator = rng if generator is None else generator
    weights = np.array([item.weight for item in items], dtype=float)
    cum_weights = np.cumsum(weights)
    total = cum_weights[-1]
    if total <= 0:
        return items[-1]

    draw = generator.random() * total
    index = int(np.searchsorted(cum_weights, draw, side="right"))
    if index >= len(items):
        # draw rounded up to the total
        index = int(np.flatnonzero(weights)[-1])
    return items[index]
