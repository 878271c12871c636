"""IMDb review preprocessing: index offsets, fixed-length padding and decoding."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Literal, Mapping, Sequence, Tuple

import numpy as np
import torch
from torch.utils.data import DataLoader, Dataset

LOGGER = logging.getLogger(__name__)

PAD = 0
START = 1
OOV = 2
INDEX_FROM = 3
PLACEHOLDER = "?"


def offset_review(
    word_ranks: Iterable[int],
    num_words: int | None = None,
    index_from: int = INDEX_FROM,
    add_start: bool = True,
) -> list[int]:
    """Shift raw word ranks by ``index_from`` so that 0..2 stay free for control tokens."""
    out = [START] if add_start else []
    for rank in word_ranks:
        idx = int(rank) + index_from
        if num_words is not None and idx >= num_words:
            idx = OOV
        out.append(idx)
    return out


def load_imdb(
    path: str | Path,
    num_words: int | None = None,
    index_from: int = INDEX_FROM,
) -> Tuple[Tuple[list[list[int]], np.ndarray], Tuple[list[list[int]], np.ndarray]]:
    """
    Read a Keras-layout ``imdb.npz`` (``x_train``, ``y_train``, ``x_test``, ``y_test``)
    holding raw word ranks and return offset, start-prefixed token lists with labels.
    """
    with np.load(path, allow_pickle=True) as data:
        x_train, y_train = data["x_train"], data["y_train"]
        x_test, y_test = data["x_test"], data["y_test"]

    train = [offset_review(r, num_words, index_from) for r in x_train]
    test = [offset_review(r, num_words, index_from) for r in x_test]
    LOGGER.info("Loaded IMDb from %s: %d train / %d test reviews", path, len(train), len(test))
    return (train, np.asarray(y_train, dtype=np.int64)), (test, np.asarray(y_test, dtype=np.int64))


def load_word_index(path: str | Path) -> Dict[str, int]:
    with open(path, "r", encoding="utf-8") as f:
        return {str(k): int(v) for k, v in json.load(f).items()}


def pad_sequences(
    sequences: Sequence[Sequence[int]],
    maxlen: int,
    padding: Literal["pre", "post"] = "pre",
    truncating: Literal["pre", "post"] = "pre",
    value: int = PAD,
) -> np.ndarray:
    """
    Truncate or pad every sequence to exactly ``maxlen`` tokens.

    Defaults drop tokens from the left and pad on the left, so
    ``[1, 2, 3, 4, 5]`` with ``maxlen=3`` becomes ``[3, 4, 5]``.
    """
    if maxlen < 1:
        raise ValueError(f"maxlen must be positive, got {maxlen}")
    if padding not in ("pre", "post") or truncating not in ("pre", "post"):
        raise ValueError(f"padding/truncating must be 'pre' or 'post', got {padding!r}/{truncating!r}")

    out = np.full((len(sequences), maxlen), value, dtype=np.int64)
    for i, seq in enumerate(sequences):
        if len(seq) == 0:
            continue
        trunc = seq[-maxlen:] if truncating == "pre" else seq[:maxlen]
        if padding == "pre":
            out[i, maxlen - len(trunc):] = trunc
        else:
            out[i, :len(trunc)] = trunc
    return out


def reverse_word_index(word_index: Mapping[str, int]) -> Dict[int, str]:
    return {idx: word for word, idx in word_index.items()}


def decode_review(
    indices: Iterable[int],
    word_index: Mapping[str, int] | None = None,
    reverse_index: Mapping[int, str] | None = None,
    index_from: int = INDEX_FROM,
) -> str:
    if reverse_index is None:
        if word_index is None:
            raise ValueError("decode_review needs word_index or reverse_index")
        reverse_index = reverse_word_index(word_index)
    words = []
    for idx in indices:
        idx = int(idx)
        # control tokens never hit the vocabulary
        if idx < index_from:
            words.append(PLACEHOLDER)
        else:
            words.append(reverse_index.get(idx - index_from, PLACEHOLDER))
    return " ".join(words)


class ReviewDataset(Dataset):
    def __init__(self, tokens: np.ndarray, labels: np.ndarray) -> None:
        if len(tokens) != len(labels):
            raise ValueError(f"{len(tokens)} reviews but {len(labels)} labels")
        self.tokens = torch.as_tensor(tokens, dtype=torch.long)
        self.labels = torch.as_tensor(labels, dtype=torch.float32)

    def __len__(self) -> int:
        return len(self.labels)

    def __getitem__(self, i: int):
        return self.tokens[i], self.labels[i]


def build_review_loaders(
    x_train: np.ndarray,
    y_train: np.ndarray,
    x_test: np.ndarray,
    y_test: np.ndarray,
    batch_size: int = 64,
    val_fraction: float = 0.2,
    seed: int = 0,
) -> Tuple[DataLoader, DataLoader, DataLoader]:
    """Hold out the tail of a shuffled training set for validation."""
    if not 0.0 < val_fraction < 1.0:
        raise ValueError(f"val_fraction must be in (0, 1), got {val_fraction}")
    rng = np.random.default_rng(seed)
    order = rng.permutation(len(y_train))
    n_val = max(1, int(len(order) * val_fraction))
    tr_idx, va_idx = order[:-n_val], order[-n_val:]

    ds_train = ReviewDataset(x_train[tr_idx], y_train[tr_idx])
    ds_val = ReviewDataset(x_train[va_idx], y_train[va_idx])
    ds_test = ReviewDataset(x_test, y_test)
    return (
        DataLoader(ds_train, batch_size=batch_size, shuffle=True),
        DataLoader(ds_val, batch_size=batch_size, shuffle=False),
        DataLoader(ds_test, batch_size=batch_size, shuffle=False),
    )
