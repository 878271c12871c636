"""
Iterative multi-step forecasting.

A single-step model is fed its own predictions: at every step the current
window goes through the model, the scalar output is emitted, and the window
slides left by one with that output appended. The encoder-decoder variant
threads the recurrent ``(h, c)`` pair through the steps instead of re-reading
the window. All values here live in the scaled domain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Sequence, Tuple

import numpy as np
import pandas as pd
import torch
import torch.nn as nn

from ..data.preprocessor import Scaler

LOGGER = logging.getLogger(__name__)

Predictor = Callable[[np.ndarray], Any]
Encoder = Callable[[np.ndarray], Any]
DecodeStep = Callable[[float, Any], Tuple[Any, Any]]


class ForecastError(RuntimeError):
    """Raised when any step of a multi-step forecast fails; no partial output is kept."""


@dataclass(frozen=True)
class ForecastStep:
    step: int
    value: float
    window: np.ndarray  # input for the next step


def _check_inputs(seed_window: Sequence[float] | np.ndarray, horizon: int) -> np.ndarray:
    if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)) or horizon < 1:
        raise ValueError(f"horizon must be a positive integer, got {horizon!r}")
    window = np.asarray(seed_window, dtype=np.float64)
    if window.ndim != 1 or window.size == 0:
        raise ValueError(f"seed window must be a non-empty 1-D sequence, got shape {window.shape}")
    return window.copy()


def _as_scalar(output: Any, step: int) -> float:
    if isinstance(output, torch.Tensor):
        output = output.detach().cpu().numpy()
    arr = np.asarray(output, dtype=np.float64)
    if arr.size != 1:
        raise ValueError(f"step {step}: model returned {arr.size} values, expected exactly one")
    return float(arr.reshape(()))


def iter_forecast(predict: Predictor, seed_window: Sequence[float] | np.ndarray, horizon: int) -> Iterator[ForecastStep]:
    """
    Lazily produce ``horizon`` forecast steps from ``seed_window``.

    ``predict`` receives the window shaped ``(1, L, 1)`` and must return exactly
    one value. Beyond the first step the window holds only model outputs once
    ``horizon >= L``.
    """
    window = _check_inputs(seed_window, horizon)
    for step in range(horizon):
        value = _as_scalar(predict(window.reshape(1, -1, 1)), step)
        window = np.append(window[1:], value)
        yield ForecastStep(step=step, value=value, window=window.copy())


def iter_seq2seq_forecast(
    encode: Encoder,
    decode_step: DecodeStep,
    seed_window: Sequence[float] | np.ndarray,
    horizon: int,
) -> Iterator[ForecastStep]:
    """
    Encoder-decoder variant: ``encode`` maps the ``(1, L, 1)`` seed window to a
    state pair, then ``decode_step(prev_value, state)`` returns
    ``(value, new_state)``. The new state replaces the old one every step and the
    first decoder input is the last observed value.
    """
    window = _check_inputs(seed_window, horizon)
    state = encode(window.reshape(1, -1, 1))
    prev = float(window[-1])
    for step in range(horizon):
        output, state = decode_step(prev, state)
        prev = _as_scalar(output, step)
        window = np.append(window[1:], prev)
        yield ForecastStep(step=step, value=prev, window=window.copy())


def _collect(steps: Iterator[ForecastStep], horizon: int) -> np.ndarray:
    try:
        values = [s.value for s in steps]
    except Exception as exc:
        raise ForecastError(f"forecast aborted: {exc}") from exc
    LOGGER.debug("Forecast finished: %d steps", horizon)
    return np.asarray(values, dtype=np.float64)


def forecast(predict: Predictor, seed_window: Sequence[float] | np.ndarray, horizon: int) -> np.ndarray:
    """Materialised :func:`iter_forecast`; any failure raises a single ``ForecastError``."""
    _check_inputs(seed_window, horizon)
    return _collect(iter_forecast(predict, seed_window, horizon), horizon)


def seq2seq_forecast(
    encode: Encoder,
    decode_step: DecodeStep,
    seed_window: Sequence[float] | np.ndarray,
    horizon: int,
) -> np.ndarray:
    _check_inputs(seed_window, horizon)
    return _collect(iter_seq2seq_forecast(encode, decode_step, seed_window, horizon), horizon)


def torch_predictor(model: nn.Module) -> Predictor:
    """Wrap a trained single-step module as a numpy-in / scalar-out predictor."""
    device = next(model.parameters()).device
    model.eval()

    @torch.no_grad()
    def predict(window: np.ndarray) -> float:
        x = torch.as_tensor(window, dtype=torch.float32, device=device)
        # multi-horizon heads: only the first step is fed back
        return float(model(x)[0, 0].item())

    return predict


def seq2seq_callables(model: nn.Module) -> Tuple[Encoder, DecodeStep]:
    """Expose a trained ``Seq2SeqForecaster`` as encoder / decoder-step callables."""
    device = next(model.parameters()).device
    model.eval()

    @torch.no_grad()
    def encode(window: np.ndarray):
        return model.encode(torch.as_tensor(window, dtype=torch.float32, device=device))

    @torch.no_grad()
    def decode_step(prev: float, state):
        y_prev = torch.tensor([[[prev]]], dtype=torch.float32, device=device)
        y, new_state = model.decode_step(y_prev, state)
        return float(y[0, 0].item()), new_state

    return encode, decode_step


def future_index(index: pd.DatetimeIndex, horizon: int) -> pd.DatetimeIndex:
    freq = index.freq or pd.infer_freq(index)
    if freq is None:
        raise ValueError("Cannot extend an index without a regular frequency")
    return pd.date_range(start=index[-1], periods=horizon + 1, freq=freq)[1:]


def forecast_series(
    predict: Predictor,
    scaler: Scaler,
    history: pd.Series,
    lookback: int,
    horizon: int,
) -> pd.Series:
    """
    Forecast ``horizon`` steps past the end of ``history`` (raw units).

    The last ``lookback`` observations are scaled, the loop runs in the scaled
    domain and the result is descaled once before being returned.
    """
    if len(history) < lookback:
        raise ValueError(f"history has {len(history)} observations, lookback needs {lookback}")
    seed = scaler.scale(history.to_numpy()[-lookback:])
    scaled = forecast(predict, seed, horizon)
    return pd.Series(scaler.descale(scaled), index=future_index(history.index, horizon), name="forecast")
