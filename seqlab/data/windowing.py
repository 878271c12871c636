from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Literal, Sequence, Tuple

import numpy as np
import torch
from torch.utils.data import DataLoader, Dataset

LOGGER = logging.getLogger(__name__)

EdgePolicy = Literal["clamp", "raise"]


@dataclass
class WindowConfig:
    lookback: int = 132  # one solar cycle, so the seasonal-naive baseline applies
    horizon: int = 1
    stride: int = 1

    def __post_init__(self) -> None:
        if self.lookback < 1 or self.horizon < 1 or self.stride < 1:
            raise ValueError(f"lookback, horizon and stride must be positive: {self}")


def first_full_position(start_offset: int) -> int:
    """First position whose window does not need clamping at index 0."""
    return max(0, -start_offset)


def window(
    values: Sequence[float] | np.ndarray,
    position: int,
    start_offset: int,
    end_offset: int,
    edge: EdgePolicy = "clamp",
) -> np.ndarray:
    """
    Return the inclusive slice ``[position + start_offset, position + end_offset]``.

    With ``edge="clamp"`` both bounds are clamped at 0, so positions close to the
    start produce short (possibly single-element) windows instead of negative
    indices. With ``edge="raise"`` any window that does not fit inside the
    series raises ``ValueError``.
    """
    if end_offset < start_offset:
        raise ValueError(f"end_offset ({end_offset}) must be >= start_offset ({start_offset})")
    arr = np.asarray(values)
    n = len(arr)
    if not 0 <= position < n:
        raise ValueError(f"position {position} outside series of length {n}")

    lo = position + start_offset
    hi = position + end_offset
    if edge == "raise":
        if lo < 0 or hi >= n:
            raise ValueError(
                f"window [{lo}, {hi}] at position {position} does not fit a series of length {n}"
            )
    elif edge != "clamp":
        raise ValueError(f"Unknown edge policy: {edge!r}")
    return arr[max(0, lo):max(0, hi) + 1]


def windows(
    values: Sequence[float] | np.ndarray,
    start_offset: int,
    end_offset: int,
    edge: EdgePolicy = "clamp",
) -> List[np.ndarray]:
    """One window per position of ``values`` (see :func:`window`)."""
    return [window(values, i, start_offset, end_offset, edge) for i in range(len(values))]


class SeriesWindowDataset(Dataset):
    """
    Full (lookback, target) windows over a scaled univariate series.

    Items are ``(x[L, 1], y[H])`` or, with ``with_target_lag``, ``(x, y_lag[H, 1], y)``
    where ``y_lag`` is the target shifted one step back (decoder input).

    ``target_mask`` restricts which positions may be forecast: a sample is kept
    only when every one of its ``H`` target positions is in the mask, while its
    lookback may read anywhere before it. Windowing the whole series this way
    lets validation and test lookbacks reach back into the previous split.
    """

    def __init__(
        self,
        values: np.ndarray,
        window_config: WindowConfig,
        with_target_lag: bool = False,
        target_mask: np.ndarray | None = None,
    ) -> None:
        self.values = np.asarray(values, dtype=np.float32).reshape(-1)
        self.cfg = window_config
        self.with_target_lag = with_target_lag
        if target_mask is not None:
            target_mask = np.asarray(target_mask, dtype=bool).reshape(-1)
            if len(target_mask) != len(self.values):
                raise ValueError(f"target_mask has {len(target_mask)} entries for {len(self.values)} values")
        self.target_mask = target_mask
        self.positions = self._target_positions()
        if not self.positions:
            LOGGER.warning(
                "No full windows: series length %d, lookback %d, horizon %d",
                len(self.values), self.cfg.lookback, self.cfg.horizon,
            )

    def _target_positions(self) -> List[int]:
        # first target position of every sample; the lookback ends one step before it
        first = first_full_position(-self.cfg.lookback)
        last = len(self.values) - self.cfg.horizon
        positions = range(first, last + 1, self.cfg.stride)
        if self.target_mask is None:
            return list(positions)
        return [t for t in positions if self.target_mask[t:t + self.cfg.horizon].all()]

    def __len__(self) -> int:
        return len(self.positions)

    def __getitem__(self, i: int):
        t = self.positions[i]
        L, H = self.cfg.lookback, self.cfg.horizon
        x_lb = window(self.values, t, -L, -1, edge="raise").reshape(-1, 1)
        y_seq = window(self.values, t, 0, H - 1, edge="raise")
        if not self.with_target_lag:
            return torch.from_numpy(x_lb), torch.from_numpy(y_seq)
        y_lag = window(self.values, t, -1, H - 2, edge="raise").reshape(-1, 1)
        return torch.from_numpy(x_lb), torch.from_numpy(y_lag), torch.from_numpy(y_seq)


def split_window_datasets(
    values: np.ndarray,
    labels: Sequence[str] | np.ndarray,
    window_config: WindowConfig,
    with_target_lag: bool = False,
    names: Sequence[str] = ("train", "validation", "test"),
) -> Dict[str, SeriesWindowDataset]:
    """
    One dataset per split label, all windowed over the same (whole) series.

    Targets belong to exactly one split; lookbacks are shared across the split
    boundaries, so every month of a split after the first ``lookback`` months of
    the series is a target somewhere.
    """
    labels = np.asarray(labels)
    if len(labels) != len(values):
        raise ValueError(f"{len(labels)} labels for {len(values)} values")
    datasets = {
        name: SeriesWindowDataset(values, window_config, with_target_lag, target_mask=labels == name)
        for name in names
    }
    LOGGER.info("Window samples per split: %s", {name: len(ds) for name, ds in datasets.items()})
    return datasets


def build_loaders(
    ds_train: Dataset,
    ds_val: Dataset,
    ds_test: Dataset,
    batch_size: int = 64,
    num_workers: int = 0,
) -> Tuple[DataLoader, DataLoader, DataLoader]:
    return (
        DataLoader(ds_train, batch_size=batch_size, shuffle=True, num_workers=num_workers, drop_last=False),
        DataLoader(ds_val, batch_size=batch_size, shuffle=False, num_workers=num_workers, drop_last=False),
        DataLoader(ds_test, batch_size=batch_size, shuffle=False, num_workers=num_workers, drop_last=False),
    )
