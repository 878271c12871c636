from __future__ import annotations

import torch


def mae(pred: torch.Tensor, target: torch.Tensor) -> torch.Tensor:
    return torch.mean(torch.abs(pred - target))


def rmse(pred: torch.Tensor, target: torch.Tensor) -> torch.Tensor:
    return torch.sqrt(torch.mean((pred - target) ** 2))


def mape(pred: torch.Tensor, target: torch.Tensor, eps: float = 1e-6) -> torch.Tensor:
    """
    Mean absolute percentage error over the non-zero targets only. Sunspot
    counts hit zero during solar minima; NaN when every target is zero.
    """
    mask = torch.abs(target) > eps
    if not bool(mask.any()):
        return torch.tensor(float("nan"), dtype=pred.dtype)
    return torch.mean(torch.abs((pred[mask] - target[mask]) / target[mask])) * 100.0


def binary_accuracy(logits: torch.Tensor, target: torch.Tensor, threshold: float = 0.0) -> torch.Tensor:
    """Fraction of logits on the correct side of ``threshold`` for 0/1 targets."""
    pred = (logits > threshold).float()
    return (pred == target.float()).float().mean()
