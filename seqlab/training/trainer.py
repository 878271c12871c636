from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

import torch
import torch.nn as nn
from torch.utils.data import DataLoader
from tqdm import tqdm

from ..evaluation.evaluator import evaluate_point
from ..evaluation.metrics import binary_accuracy
from ..models.recurrent import Seq2SeqForecaster

LOGGER = logging.getLogger(__name__)


def default_device() -> str:
    return "cuda" if torch.cuda.is_available() else "cpu"


@dataclass
class TrainConfig:
    epochs: int = 10
    lr: float = 1e-3
    grad_clip: float = 1.0
    batch_size: int = 64
    device: str = field(default_factory=default_device)
    show_progress: bool = True


StepFn = Callable[[nn.Module, tuple], tuple]


def _forecaster_step(model: nn.Module, batch: tuple) -> tuple:
    xb, yb = batch
    return model(xb), yb


def _seq2seq_step(model: nn.Module, batch: tuple) -> tuple:
    xb, y_lag, yb = batch
    return model(xb, y_lag), yb


def _seq2seq_free_step(model: nn.Module, batch: tuple) -> tuple:
    # the decoder sees only its own outputs, never y_lag
    xb, _, yb = batch
    return model.generate(xb, yb.size(1)), yb


def _classifier_step(model: nn.Module, batch: tuple) -> tuple:
    tokens, labels = batch
    return model(tokens), labels


def _fit(
    model: nn.Module,
    train_loader: DataLoader,
    val_loader: DataLoader,
    cfg: TrainConfig,
    loss_fn: nn.Module,
    step: StepFn,
    name: str,
    track_accuracy: bool = False,
    eval_step: StepFn | None = None,
) -> Dict[str, List[float]]:
    device = cfg.device
    eval_step = eval_step or step
    model.to(device)
    optimizer = torch.optim.AdamW(model.parameters(), lr=cfg.lr)

    history: Dict[str, List[float]] = {"train_loss": [], "val_loss": []}
    if track_accuracy:
        history["val_acc"] = []

    for epoch in range(cfg.epochs):
        model.train()
        pbar = tqdm(train_loader, desc=f"[{name}] Train {epoch+1}/{cfg.epochs}", disable=not cfg.show_progress)
        total_loss = 0.0
        for batch in pbar:
            batch = tuple(t.to(device) for t in batch)
            pred, target = step(model, batch)
            loss = loss_fn(pred, target)
            optimizer.zero_grad(set_to_none=True)
            loss.backward()
            nn.utils.clip_grad_norm_(model.parameters(), cfg.grad_clip)
            optimizer.step()
            total_loss += loss.item() * target.size(0)
            pbar.set_postfix({"loss": loss.item()})

        avg_loss = total_loss / max(1, len(train_loader.dataset))
        history["train_loss"].append(avg_loss)

        val = _evaluate(model, val_loader, loss_fn, eval_step, device)
        history["val_loss"].append(val["loss"])
        msg = f"Epoch {epoch+1}: train_loss={avg_loss:.4f} | val_loss={val['loss']:.4f}"
        if track_accuracy:
            history["val_acc"].append(val["acc"])
            msg += f" val_acc={val['acc']:.3f}"
        LOGGER.info("[%s] %s", name, msg)

    return history


@torch.no_grad()
def _collect(model: nn.Module, loader: DataLoader, step: StepFn, device: str):
    model.to(device)
    model.eval()
    preds, targets = [], []
    for batch in loader:
        batch = tuple(t.to(device) for t in batch)
        pred, target = step(model, batch)
        preds.append(pred)
        targets.append(target)
    if not preds:
        raise ValueError("Cannot evaluate on an empty loader")
    return torch.cat(preds, 0), torch.cat(targets, 0)


def _evaluate(model: nn.Module, loader: DataLoader, loss_fn: nn.Module, step: StepFn, device: str) -> Dict[str, float]:
    pred, tgt = _collect(model, loader, step, device)
    out = {"loss": loss_fn(pred, tgt).item()}
    if isinstance(loss_fn, nn.BCEWithLogitsLoss):
        out["acc"] = binary_accuracy(pred, tgt).item()
    return out


def fit_forecaster(model: nn.Module, train_loader: DataLoader, val_loader: DataLoader, cfg: TrainConfig):
    return _fit(model, train_loader, val_loader, cfg, nn.MSELoss(), _forecaster_step, "RNN")


def fit_seq2seq(model: Seq2SeqForecaster, train_loader: DataLoader, val_loader: DataLoader, cfg: TrainConfig):
    """
    Teacher-forced training on ``(x, target_lag, target)`` batches. The
    validation loss is computed with free-running decoding.
    """
    return _fit(
        model, train_loader, val_loader, cfg, nn.MSELoss(), _seq2seq_step, "Seq2Seq",
        eval_step=_seq2seq_free_step,
    )


def fit_classifier(model: nn.Module, train_loader: DataLoader, val_loader: DataLoader, cfg: TrainConfig):
    return _fit(
        model, train_loader, val_loader, cfg, nn.BCEWithLogitsLoss(), _classifier_step, "Sentiment",
        track_accuracy=True,
    )


def predict_forecaster(model: nn.Module, loader: DataLoader, device: str | None = None):
    """
    Bulk predictions with matching targets, both [N, H]. Single-shot models
    predict all H steps at once; a ``Seq2SeqForecaster`` decodes free-running,
    so the targets in the batch never reach the model.
    """
    device = device or str(next(model.parameters()).device)
    step = _seq2seq_free_step if isinstance(model, Seq2SeqForecaster) else _forecaster_step
    return _collect(model, loader, step, device)


def evaluate_forecaster(model: nn.Module, loader: DataLoader, device: str | None = None) -> Dict[str, float]:
    # loaders carry standardised values, so only MAE/RMSE are meaningful here
    pred, tgt = predict_forecaster(model, loader, device)
    return evaluate_point(pred, tgt, with_mape=False)


def evaluate_classifier(model: nn.Module, loader: DataLoader, device: str | None = None) -> Dict[str, float]:
    device = device or str(next(model.parameters()).device)
    val = _evaluate(model, loader, nn.BCEWithLogitsLoss(), _classifier_step, device)
    return {"loss": val["loss"], "accuracy": val["acc"]}
