"""Experiment configuration: nested dataclasses, optionally overridden from JSON."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Type, TypeVar

from ..data.series import SplitConfig
from ..data.windowing import WindowConfig
from ..training.trainer import TrainConfig
from .io import load_json

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RecurrentModelConfig:
    cell: str = "lstm"
    hidden_dim: int = 64
    num_layers: int = 1
    dropout: float = 0.0


@dataclass
class SunspotConfig:
    data_path: str = "data/Sunspots.csv"
    date_col: str = "Date"
    value_col: str = "Monthly Mean Total Sunspot Number"
    results_dir: str = "results/sunspots"
    seed: int = 42
    # months forecast autoregressively from the end of the validation split
    forecast_horizon: int = 132
    split: SplitConfig = field(default_factory=lambda: SplitConfig(start_year=1758))
    window: WindowConfig = field(default_factory=WindowConfig)
    model: RecurrentModelConfig = field(default_factory=RecurrentModelConfig)
    train: TrainConfig = field(default_factory=TrainConfig)


@dataclass
class ImdbConfig:
    data_path: str = "data/imdb.npz"
    word_index_path: str = "data/imdb_word_index.json"
    results_dir: str = "results/imdb"
    seed: int = 42
    num_words: int = 10000
    maxlen: int = 500
    embed_dim: int = 32
    val_fraction: float = 0.2
    model: RecurrentModelConfig = field(default_factory=lambda: RecurrentModelConfig(hidden_dim=32))
    train: TrainConfig = field(default_factory=lambda: TrainConfig(epochs=10, batch_size=128))


def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
    """Build a (nested) dataclass from a mapping, rejecting unknown keys."""
    fields = {f.name: f for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - set(fields))
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {unknown}")
    kwargs = {}
    for name, value in data.items():
        default = getattr(cls(), name)
        if dataclasses.is_dataclass(default) and isinstance(value, Mapping):
            kwargs[name] = from_dict(type(default), {**asdict(default), **value})
        else:
            kwargs[name] = value
    return cls(**kwargs)


def deep_update(base: Dict[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``updates`` into ``base`` (mutated and returned)."""
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = deep_update(base[key], value)
        else:
            base[key] = value
    return base


def load_config(cls: Type[T], path: str | Path | None = None, overrides: Mapping[str, Any] | None = None) -> T:
    """
    Defaults of ``cls`` updated from a JSON file and then from ``overrides``.
    JSON files must carry a ``description`` field.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if path.suffix.lower() != ".json":
            raise ValueError(f"Unsupported config extension (JSON required): {path.suffix}")
        data = load_json(str(path))
        description = data.pop("description", None)
        if description is None:
            raise ValueError("Config files must provide a 'description' field")
        LOGGER.info("Loaded config %s: %s", path, description)
    if overrides:
        data = deep_update(data, overrides)
    return from_dict(cls, data)
