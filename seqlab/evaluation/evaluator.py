from __future__ import annotations

from typing import Dict

import numpy as np
import torch

from ..models.baselines.naive import NaiveForecaster, SeasonalNaiveForecaster
from .metrics import mae, rmse, mape


def _to_tensor(x) -> torch.Tensor:
    if isinstance(x, torch.Tensor):
        return x.detach().double()
    return torch.as_tensor(np.asarray(x, dtype=np.float64))


def evaluate_point(pred, tgt, with_mape: bool = True) -> Dict[str, float]:
    """
    MAE/RMSE, plus MAPE when the values are in raw units. MAPE on
    standardised values (centred near zero) is not reported.
    """
    pred, tgt = _to_tensor(pred), _to_tensor(tgt)
    if pred.shape != tgt.shape:
        raise ValueError(f"prediction shape {tuple(pred.shape)} != target shape {tuple(tgt.shape)}")
    out = {
        "mae": mae(pred, tgt).item(),
        "rmse": rmse(pred, tgt).item(),
    }
    if with_mape:
        out["mape"] = mape(pred, tgt).item()
    return out


def inverse_scale_metrics(metrics: Dict[str, float], target_std: float) -> Dict[str, float]:
    # StandardScaler: MAE/RMSE scale linearly with std, so multiply back to sunspot units
    scaled = {k: v for k, v in metrics.items() if k != "mape"}
    scaled["mae_real"] = metrics["mae"] * target_std
    scaled["rmse_real"] = metrics["rmse"] * target_std
    return scaled


def evaluate_baselines(loader, lookback: int, horizon: int, seasonality: int = 132) -> Dict[str, Dict[str, float]]:
    """Scaled MAE/RMSE of the persistence and (when the lookback covers a cycle) seasonal-naive baselines."""
    naive = NaiveForecaster(horizon=horizon)
    seasonal = SeasonalNaiveForecaster(horizon=horizon, seasonality=seasonality) if lookback >= seasonality else None
    preds = {"naive": [], "seasonal_naive": []}
    tgts = []
    for batch in loader:
        xb, yb = batch[0], batch[-1]
        preds["naive"].append(naive.predict(xb))
        if seasonal is not None:
            preds["seasonal_naive"].append(seasonal.predict(xb))
        tgts.append(yb)
    if not tgts:
        raise ValueError("Cannot evaluate baselines on an empty loader")
    tgt = torch.cat(tgts, dim=0)
    return {name: evaluate_point(torch.cat(p, dim=0), tgt, with_mape=False) for name, p in preds.items() if p}
