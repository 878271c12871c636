from __future__ import annotations

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from typing import Dict, List


def plot_loss_curve(history: Dict[str, List[float]], save_path: str, title: str = "Training Loss") -> None:
    epochs = np.arange(1, len(history["train_loss"]) + 1)
    plt.figure(figsize=(6, 4))
    plt.plot(epochs, history["train_loss"], label="train_loss")
    if history.get("val_loss"):
        plt.plot(epochs, history["val_loss"], label="val_loss")
    plt.xlabel("Epoch")
    plt.ylabel("Loss")
    plt.title(title)
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()
    plt.savefig(save_path)
    plt.close()


def plot_accuracy_curve(history: Dict[str, List[float]], save_path: str) -> None:
    epochs = np.arange(1, len(history["val_acc"]) + 1)
    plt.figure(figsize=(6, 4))
    plt.plot(epochs, history["val_acc"], marker="o", label="val_acc")
    plt.xlabel("Epoch")
    plt.ylabel("Accuracy")
    plt.ylim(0.0, 1.0)
    plt.title("Validation Accuracy")
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()
    plt.savefig(save_path)
    plt.close()


def plot_forecast(
    observed: pd.Series,
    forecast: pd.Series,
    save_path: str,
    title: str = "Observed vs Forecast",
    ylabel: str = "Monthly mean sunspots",
) -> None:
    plt.figure(figsize=(10, 4))
    plt.plot(observed.index, observed.to_numpy(), label="Observed", linewidth=1.0)
    plt.plot(forecast.index, forecast.to_numpy(), label="Forecast", linewidth=1.5)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()
    plt.savefig(save_path)
    plt.close()


def plot_bar_comparison(labels: List[str], values: List[float], ylabel: str, save_path: str, title: str = "Model Comparison") -> None:
    x = np.arange(len(labels))
    plt.figure(figsize=(6, 4))
    bars = plt.bar(x, values, color="#4C78A8")
    plt.xticks(x, labels, rotation=15)
    plt.ylabel(ylabel)
    plt.title(title)
    for b in bars:
        h = b.get_height()
        plt.text(b.get_x() + b.get_width() / 2, h, f"{h:.3f}", ha="center", va="bottom", fontsize=9)
    plt.tight_layout()
    plt.savefig(save_path)
    plt.close()
