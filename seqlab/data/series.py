from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd

LOGGER = logging.getLogger(__name__)

SPLIT_LABELS = ("train", "validation", "test")


@dataclass
class SplitConfig:
    # inclusive upper year bounds; everything after val_end_year is test
    train_end_year: int = 1940
    val_end_year: int = 1980
    start_year: int | None = None


def validate_series(series: pd.Series) -> pd.Series:
    """Check that ``series`` is indexed by a strictly increasing, evenly spaced DatetimeIndex."""
    if not isinstance(series.index, pd.DatetimeIndex):
        raise ValueError("Series must be indexed by a DatetimeIndex")
    if len(series) < 3:
        raise ValueError(f"Series needs at least 3 observations, got {len(series)}")
    if not series.index.is_monotonic_increasing or not series.index.is_unique:
        raise ValueError("Series index must be strictly increasing")
    if pd.infer_freq(series.index) is None:
        raise ValueError("Series index must be evenly spaced")
    if series.isna().any():
        raise ValueError(f"Series contains {int(series.isna().sum())} missing values")
    return series


def load_sunspots(
    path: str | Path,
    date_col: str = "Date",
    value_col: str = "Monthly Mean Total Sunspot Number",
) -> pd.Series:
    """
    Load the monthly sunspot CSV into a float Series indexed by month start.
    Expects at least the date and value columns (SILSO layout by default).
    """
    df = pd.read_csv(path)
    missing = [col for col in (date_col, value_col) if col not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing} in {path}")

    dates = pd.to_datetime(df[date_col], errors="coerce")
    values = pd.to_numeric(df[value_col], errors="coerce")
    series = pd.Series(values.to_numpy(dtype=np.float64), index=pd.DatetimeIndex(dates), name="sunspots")
    series = series[series.index.notna()].dropna().sort_index()
    # normalise to month start so month-end and mid-month stamps infer the same frequency
    series.index = series.index.to_period("M").to_timestamp()
    series.index.name = "date"
    LOGGER.info("Loaded %d monthly observations from %s (%s to %s)",
                len(series), path, series.index[0].date(), series.index[-1].date())
    return validate_series(series)


def label_splits(index: pd.DatetimeIndex, cfg: SplitConfig) -> pd.Series:
    """Tag each timestamp with exactly one of train/validation/test by year range."""
    if cfg.val_end_year < cfg.train_end_year:
        raise ValueError("val_end_year must not precede train_end_year")
    years = index.year
    labels = np.where(
        years <= cfg.train_end_year,
        "train",
        np.where(years <= cfg.val_end_year, "validation", "test"),
    )
    return pd.Series(labels, index=index, name="split")


def trim_burn_in(series: pd.Series, cfg: SplitConfig) -> pd.Series:
    """Drop observations before ``cfg.start_year`` (if set)."""
    if cfg.start_year is None:
        return series
    return series[series.index.year >= cfg.start_year]


def split_series(series: pd.Series, cfg: SplitConfig) -> Dict[str, pd.Series]:
    """
    Split a validated series into disjoint train/validation/test parts.
    Observations before ``cfg.start_year`` are dropped first (burn-in).
    """
    series = trim_burn_in(series, cfg)
    labels = label_splits(series.index, cfg)
    parts = {name: series[labels == name].copy() for name in SPLIT_LABELS}
    for name, part in parts.items():
        if part.empty:
            raise ValueError(f"Split '{name}' is empty for {cfg}")
    LOGGER.info("Split sizes: %s", {name: len(part) for name, part in parts.items()})
    return parts
