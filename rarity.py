import json
import pathlib
from typing import List, Sequence

import numpy as np
import pandas as pd
from scipy.stats import chisquare

from models import Combination, Component


class OccurrenceTable:
    """How often each item of each component has been selected."""

    def __init__(self, components: Sequence[Component]):
        self.counts = [np.zeros(len(c.items), dtype=int) for c in components]

    def record(self, combination: Combination) -> None:
        for counts, item in zip(self.counts, combination):
            counts[item.index] += 1

    def to_list(self) -> List[List[int]]:
        return [counts.tolist() for counts in self.counts]

    def save(self, path: pathlib.Path) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_list(), f)


def rarity_report(table: OccurrenceTable, components: Sequence[Component]) -> pd.DataFrame:
    """Compare actual item shares against the configured weights.

    Returns:
        DataFrame with one row per item: component, trait, count, target and
        actual share, and the chi-square p-value of its component (NaN when the
        test is undefined, e.g. nothing generated yet).
    """
    rows = []
    for component, counts in zip(components, table.counts):
        weights = np.array([item.weight for item in component.items], dtype=float)
        target = weights / weights.sum()
        total = counts.sum()
        actual = counts / total if total else np.zeros(len(counts))

        p_value = np.nan
        # Zero-weight items have no expected frequency to test against
        mask = target > 0
        if total and mask.sum() > 1 and counts[~mask].sum() == 0:
            expected = target[mask] * total
            p_value = chisquare(counts[mask], f_exp=expected).pvalue

        for item, count, target_share, actual_share in zip(
            component.items, counts, target, actual
        ):
            rows.append(
                {
                    "component": component.trait_type,
                    "trait": item.trait_value or f"#{item.index + 1}",
                    "count": int(count),
                    "target": float(target_share),
                    "actual": float(actual_share),
                    "p_value": p_value,
                }
            )

    return pd.DataFrame(rows)


def print_rarity_report(report: pd.DataFrame) -> None:
    """Display target vs actual shares per component."""
    for component, group in report.groupby("component", sort=False):
        print(f"\n{component.upper()}:")
        for row in group.itertuples():
            diff = abs(row.actual - row.target)
            print(
                f"    {row.trait}: {row.actual:.4f} (target: {row.target:.4f}, diff: {diff:.4f})"
            )
        p_value = group["p_value"].iloc[0]
        if not np.isnan(p_value):
            print(f"  Chi-square p-value: {p_value:.4f}")
