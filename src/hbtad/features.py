"""
Feature vector construction from histogram snapshots.

A FeatureLayout selects and orders histogram tables; the vector is the
concatenation of the selected tables' bucket counts.
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import SNAP_LEN
from .histogram import HISTOGRAM_TABLES, HistogramSnapshot, table_sizes


class FeatureLayout:
    """Ordered selection of histogram tables that make up a feature vector."""

    def __init__(self, tables: Optional[Sequence[str]] = None):
        tables = tuple(tables) if tables is not None else HISTOGRAM_TABLES
        if not tables:
            raise ValueError("FeatureLayout needs at least one table")
        unknown = [name for name in tables if name not in HISTOGRAM_TABLES]
        if unknown:
            raise ValueError(f"Unknown histogram tables: {unknown}. Valid tables: {list(HISTOGRAM_TABLES)}")
        if len(set(tables)) != len(tables):
            raise ValueError(f"Duplicate tables in layout: {list(tables)}")
        self.tables = tables

    def __repr__(self):
        return f"FeatureLayout(tables={self.tables!r})"

    def dimension(self, snap_len: int = SNAP_LEN) -> int:
        sizes = table_sizes(snap_len)
        return sum(sizes[name] for name in self.tables)

    def feature_names(self, snap_len: int = SNAP_LEN) -> List[str]:
        """Column names such as ``protocols[0]``, in vector order."""
        sizes = table_sizes(snap_len)
        return [f"{name}[{i}]" for name in self.tables for i in range(sizes[name])]

    def vector(self, snapshot: HistogramSnapshot) -> np.ndarray:
        """Concatenate the selected tables into a float vector."""
        return np.concatenate([
            snapshot.table(name).astype(np.float64) for name in self.tables
        ])


def build_feature_matrix(snapshots: Iterable[HistogramSnapshot],
                         layout: Optional[FeatureLayout] = None) -> pd.DataFrame:
    """
    Build one feature vector per snapshot.

    Args:
        snapshots: Histogram snapshots sharing the same snapshot limit
        layout: Table selection (defaults to every table)

    Returns:
        DataFrame with one row per snapshot and one column per dimension
    """
    layout = layout or FeatureLayout()
    snapshots = list(snapshots)
    if not snapshots:
        return pd.DataFrame(columns=layout.feature_names())

    snap_lens = {s.snap_len for s in snapshots}
    if len(snap_lens) != 1:
        raise ValueError(f"Snapshots have different snap lengths: {sorted(snap_lens)}")
    snap_len = snap_lens.pop()

    rows = np.vstack([layout.vector(s) for s in snapshots])
    return pd.DataFrame(rows, columns=layout.feature_names(snap_len))
