from __future__ import annotations

import argparse
import logging
import os
from dataclasses import asdict

import torch

from seqlab.data.text import build_review_loaders, decode_review, load_imdb, load_word_index, pad_sequences
from seqlab.models.classifier import SentimentClassifier
from seqlab.training.trainer import evaluate_classifier, fit_classifier
from seqlab.utils.config import ImdbConfig, load_config
from seqlab.utils.io import ensure_dir, save_json
from seqlab.utils.logging_utils import configure_logging
from seqlab.utils.seed import set_seed
from seqlab.utils.visualization import plot_accuracy_curve, plot_loss_curve

LOGGER = logging.getLogger("run_imdb")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train a recurrent sentiment classifier on IMDb reviews.")
    parser.add_argument("--config", default=None, help="JSON config overriding ImdbConfig defaults")
    parser.add_argument("--cell", choices=["lstm", "gru"], default=None)
    parser.add_argument("--results-dir", default=None)
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--log-level", default="info")
    return parser.parse_args()


def main():
    args = parse_args()
    configure_logging(args.log_level)

    overrides = {}
    if args.results_dir:
        overrides["results_dir"] = args.results_dir
    if args.cell:
        overrides["model"] = {"cell": args.cell}
    if args.epochs is not None:
        overrides["train"] = {"epochs": args.epochs}
    cfg = load_config(ImdbConfig, args.config, overrides)
    set_seed(cfg.seed)

    results_dir = os.path.join(cfg.results_dir, cfg.model.cell)
    ensure_dir(results_dir)

    (x_train, y_train), (x_test, y_test) = load_imdb(cfg.data_path, num_words=cfg.num_words)
    word_index = load_word_index(cfg.word_index_path)
    LOGGER.info("First review: %s", decode_review(x_train[0][:30], word_index))

    X_train = pad_sequences(x_train, maxlen=cfg.maxlen)
    X_test = pad_sequences(x_test, maxlen=cfg.maxlen)
    train_loader, val_loader, test_loader = build_review_loaders(
        X_train, y_train, X_test, y_test,
        batch_size=cfg.train.batch_size, val_fraction=cfg.val_fraction, seed=cfg.seed,
    )

    model = SentimentClassifier(
        vocab_size=cfg.num_words,
        embed_dim=cfg.embed_dim,
        hidden_dim=cfg.model.hidden_dim,
        num_layers=cfg.model.num_layers,
        dropout=cfg.model.dropout,
        cell=cfg.model.cell,
    )
    history = fit_classifier(model, train_loader, val_loader, cfg.train)
    test_metrics = evaluate_classifier(model, test_loader)
    LOGGER.info("Test: loss=%.4f accuracy=%.4f", test_metrics["loss"], test_metrics["accuracy"])

    save_json({"config": asdict(cfg), "history": history, "test": test_metrics}, os.path.join(results_dir, "metrics.json"))
    plot_loss_curve(history, os.path.join(results_dir, "train_loss.png"))
    plot_accuracy_curve(history, os.path.join(results_dir, "val_accuracy.png"))
    torch.save({"state_dict": model.state_dict(), "config": asdict(cfg)}, os.path.join(results_dir, "model.pth"))
    LOGGER.info("Results written to %s", results_dir)


if __name__ == "__main__":
    main()
