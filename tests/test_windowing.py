from __future__ import annotations

import numpy as np
import pytest
import torch

from seqlab.data.windowing import (
    SeriesWindowDataset,
    WindowConfig,
    build_loaders,
    first_full_position,
    split_window_datasets,
    window,
    windows,
)

SERIES = [10, 20, 30, 40, 50]


def test_interior_window_is_inclusive():
    assert window(SERIES, 4, -2, 0).tolist() == [30, 40, 50]
    assert window(SERIES, 4, -3, -1).tolist() == [20, 30, 40]


def test_interior_window_length_matches_offsets():
    for start, end in [(-3, -1), (-2, 0), (-1, -1), (-4, 0)]:
        assert len(window(SERIES, 4, start, end)) == end - start + 1


def test_clamp_at_series_start():
    assert window(SERIES, 0, -3, -1).tolist() == [10]
    assert window(SERIES, 1, -3, -1).tolist() == [10]
    assert window(SERIES, 2, -3, -1).tolist() == [10, 20]


def test_clamped_windows_never_wrap_around():
    # a negative index would pull values from the end of the series
    assert [w.tolist() for w in windows(SERIES, -3, -1)] == [
        [10], [10], [10, 20], [10, 20, 30], [20, 30, 40],
    ]


def test_strict_edge_policy_raises_before_start():
    with pytest.raises(ValueError):
        window(SERIES, 0, -3, -1, edge="raise")
    assert window(SERIES, 3, -3, -1, edge="raise").tolist() == [10, 20, 30]


def test_strict_edge_policy_raises_past_end():
    with pytest.raises(ValueError):
        window(SERIES, 4, 0, 1, edge="raise")


def test_invalid_arguments():
    with pytest.raises(ValueError):
        window(SERIES, 2, 0, -1)
    with pytest.raises(ValueError):
        window(SERIES, 5, -1, 0)
    with pytest.raises(ValueError):
        window(SERIES, 2, -1, 0, edge="wrap")


def test_first_full_position():
    assert first_full_position(-3) == 3
    assert first_full_position(0) == 0
    start = first_full_position(-3)
    assert len(window(SERIES, start, -3, -1, edge="raise")) == 3


def test_window_config_rejects_non_positive():
    with pytest.raises(ValueError):
        WindowConfig(lookback=0)
    with pytest.raises(ValueError):
        WindowConfig(horizon=0)


def test_dataset_builds_only_full_windows():
    values = np.arange(10, dtype=np.float32)
    ds = SeriesWindowDataset(values, WindowConfig(lookback=3, horizon=2))
    assert len(ds) == 10 - 3 - 2 + 1
    x, y = ds[0]
    assert x.shape == (3, 1)
    assert x[:, 0].tolist() == [0.0, 1.0, 2.0]
    assert y.tolist() == [3.0, 4.0]
    x, y = ds[len(ds) - 1]
    assert y.tolist() == [8.0, 9.0]


def test_dataset_stride():
    ds = SeriesWindowDataset(np.arange(10), WindowConfig(lookback=2, horizon=1, stride=3))
    assert [ds[i][0][0, 0].item() for i in range(len(ds))] == [0.0, 3.0, 6.0]


def test_dataset_target_lag_is_target_shifted_back():
    ds = SeriesWindowDataset(np.arange(8), WindowConfig(lookback=3, horizon=3), with_target_lag=True)
    x, y_lag, y = ds[1]
    assert x[:, 0].tolist() == [1.0, 2.0, 3.0]
    assert y.tolist() == [4.0, 5.0, 6.0]
    assert y_lag.shape == (3, 1)
    assert y_lag[:, 0].tolist() == [3.0, 4.0, 5.0]


def test_dataset_too_short_is_empty():
    ds = SeriesWindowDataset(np.arange(3), WindowConfig(lookback=3, horizon=1))
    assert len(ds) == 0


def test_build_loaders_batches():
    ds = SeriesWindowDataset(np.arange(20), WindowConfig(lookback=4, horizon=1))
    train, val, test = build_loaders(ds, ds, ds, batch_size=5)
    xb, yb = next(iter(val))
    assert xb.shape == (5, 4, 1)
    assert yb.shape == (5, 1)
    assert xb.dtype == torch.float32
    assert sum(len(b[0]) for b in train) == len(ds)


def _labels(n_train: int, n_val: int, n_test: int) -> np.ndarray:
    return np.array(["train"] * n_train + ["validation"] * n_val + ["test"] * n_test)


def test_split_datasets_score_every_validation_month():
    # 40 years of train, 40 of validation (1941-1980), 10 of test
    values = np.arange(1080, dtype=np.float32)
    labels = _labels(480, 480, 120)
    parts = split_window_datasets(values, labels, WindowConfig(lookback=120, horizon=1))
    assert len(parts["validation"]) == 480
    assert len(parts["test"]) == 120
    assert len(parts["train"]) == 480 - 120


def test_split_lookback_reaches_into_previous_split():
    values = np.arange(1080, dtype=np.float32)
    parts = split_window_datasets(values, _labels(480, 480, 120), WindowConfig(lookback=120, horizon=1))
    x, y = parts["validation"][0]
    assert y.tolist() == [480.0]
    assert x[:, 0].tolist() == list(range(360, 480))
    x, y = parts["test"][0]
    assert y.tolist() == [960.0]
    assert x[-1, 0].item() == 959.0


def test_split_targets_stay_inside_their_split():
    values = np.arange(30, dtype=np.float32)
    parts = split_window_datasets(values, _labels(10, 10, 10), WindowConfig(lookback=4, horizon=3), with_target_lag=True)
    assert len(parts["validation"]) == 10 - 3 + 1
    firsts = [parts["validation"][i][2][0].item() for i in range(len(parts["validation"]))]
    assert firsts == [float(t) for t in range(10, 18)]
    x, y_lag, y = parts["validation"][0]
    assert y_lag[:, 0].tolist() == [9.0, 10.0, 11.0]


def test_split_datasets_reject_misaligned_labels():
    with pytest.raises(ValueError):
        split_window_datasets(np.arange(10), _labels(3, 3, 3), WindowConfig(lookback=2))
    with pytest.raises(ValueError):
        SeriesWindowDataset(np.arange(10), WindowConfig(lookback=2), target_mask=np.ones(9, dtype=bool))
