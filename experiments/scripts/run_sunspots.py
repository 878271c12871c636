from __future__ import annotations

import argparse
import logging
import os
from dataclasses import asdict

import pandas as pd
import torch

from seqlab.data.preprocessor import fit_scaler
from seqlab.data.series import label_splits, load_sunspots, split_series, trim_burn_in
from seqlab.data.windowing import build_loaders, split_window_datasets
from seqlab.evaluation.evaluator import evaluate_baselines, evaluate_point, inverse_scale_metrics
from seqlab.forecasting.autoregressive import (
    forecast_series,
    future_index,
    seq2seq_callables,
    seq2seq_forecast,
    torch_predictor,
)
from seqlab.models.recurrent import RecurrentForecaster, Seq2SeqForecaster
from seqlab.training.trainer import evaluate_forecaster, fit_forecaster, fit_seq2seq
from seqlab.utils.config import SunspotConfig, load_config
from seqlab.utils.io import ensure_dir, save_json
from seqlab.utils.logging_utils import configure_logging
from seqlab.utils.seed import set_seed
from seqlab.utils.visualization import plot_bar_comparison, plot_forecast, plot_loss_curve

LOGGER = logging.getLogger("run_sunspots")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train an RNN on monthly sunspots and forecast autoregressively.")
    parser.add_argument("--config", default=None, help="JSON config overriding SunspotConfig defaults")
    parser.add_argument("--arch", choices=["rnn", "seq2seq"], default="rnn")
    parser.add_argument("--data-path", default=None)
    parser.add_argument("--results-dir", default=None)
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--log-level", default="info")
    return parser.parse_args()


def main():
    args = parse_args()
    configure_logging(args.log_level)

    overrides = {}
    if args.data_path:
        overrides["data_path"] = args.data_path
    if args.results_dir:
        overrides["results_dir"] = args.results_dir
    if args.epochs is not None:
        overrides["train"] = {"epochs": args.epochs}
    cfg = load_config(SunspotConfig, args.config, overrides)
    set_seed(cfg.seed)

    results_dir = os.path.join(cfg.results_dir, args.arch)
    ensure_dir(results_dir)

    series = load_sunspots(cfg.data_path, cfg.date_col, cfg.value_col)
    parts = split_series(series, cfg.split)
    scaler = fit_scaler(parts["train"].to_numpy())
    LOGGER.info("Scaler fitted on train split: mean=%.3f std=%.3f", scaler.mean, scaler.std)

    # window the whole (burn-in trimmed) series; each split keeps only its own targets
    seq2seq = args.arch == "seq2seq"
    series = trim_burn_in(series, cfg.split)
    labels = label_splits(series.index, cfg.split).to_numpy()
    datasets = split_window_datasets(scaler.scale(series.to_numpy()), labels, cfg.window, with_target_lag=seq2seq)
    train_loader, val_loader, test_loader = build_loaders(
        datasets["train"], datasets["validation"], datasets["test"], batch_size=cfg.train.batch_size
    )

    baselines = evaluate_baselines(val_loader, cfg.window.lookback, cfg.window.horizon)
    LOGGER.info("Baselines (validation, scaled): %s", baselines)

    if seq2seq:
        model = Seq2SeqForecaster(hidden_dim=cfg.model.hidden_dim, num_layers=cfg.model.num_layers, dropout=cfg.model.dropout)
        history = fit_seq2seq(model, train_loader, val_loader, cfg.train)
    else:
        model = RecurrentForecaster(
            hidden_dim=cfg.model.hidden_dim,
            num_layers=cfg.model.num_layers,
            dropout=cfg.model.dropout,
            horizon=cfg.window.horizon,
            cell=cfg.model.cell,
        )
        history = fit_forecaster(model, train_loader, val_loader, cfg.train)

    val_metrics = evaluate_forecaster(model, val_loader)
    test_metrics = evaluate_forecaster(model, test_loader)
    LOGGER.info("Validation: %s | Test: %s", val_metrics, test_metrics)

    # Autoregressive forecast from the end of the validation split into the test years
    observed = pd.concat([parts["train"], parts["validation"]])
    horizon = min(cfg.forecast_horizon, len(parts["test"]))
    if seq2seq:
        encode, decode_step = seq2seq_callables(model)
        seed = scaler.scale(observed.to_numpy()[-cfg.window.lookback:])
        values = scaler.descale(seq2seq_forecast(encode, decode_step, seed, horizon))
        fc = pd.Series(values, index=future_index(observed.index, horizon), name="forecast")
    else:
        fc = forecast_series(torch_predictor(model), scaler, observed, cfg.window.lookback, horizon)
    truth = parts["test"].iloc[:horizon]
    fc_metrics = evaluate_point(fc.to_numpy(), truth.to_numpy())
    LOGGER.info("Autoregressive %d-month forecast vs test: %s", horizon, fc_metrics)

    save_json(
        {
            "config": asdict(cfg),
            "history": history,
            "baselines_val": baselines,
            "val": inverse_scale_metrics(val_metrics, scaler.std),
            "test": inverse_scale_metrics(test_metrics, scaler.std),
            "forecast": fc_metrics,
        },
        os.path.join(results_dir, "metrics.json"),
    )
    pd.DataFrame({"observed": truth, "forecast": fc}).to_csv(os.path.join(results_dir, "forecast.csv"))
    plot_loss_curve(history, os.path.join(results_dir, "train_loss.png"))
    context = parts["validation"].iloc[-cfg.window.lookback:]
    plot_forecast(pd.concat([context, truth]), fc, os.path.join(results_dir, "forecast.png"),
                  title=f"Sunspots: {args.arch} {horizon}-month autoregressive forecast")

    labels = list(baselines) + [args.arch]
    plot_bar_comparison(labels, [m["rmse"] for m in baselines.values()] + [val_metrics["rmse"]],
                        ylabel="RMSE (scaled)", save_path=os.path.join(results_dir, "compare_rmse.png"),
                        title="Validation RMSE")

    torch.save({"state_dict": model.state_dict(), "config": asdict(cfg), "scaler": {"mean": scaler.mean, "std": scaler.std}},
               os.path.join(results_dir, "model.pth"))
    LOGGER.info("Results written to %s", results_dir)


if __name__ == "__main__":
    main()
