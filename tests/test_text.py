from __future__ import annotations

import json

import numpy as np
import pytest

from seqlab.data.text import (
    INDEX_FROM,
    OOV,
    PAD,
    PLACEHOLDER,
    START,
    ReviewDataset,
    build_review_loaders,
    decode_review,
    load_imdb,
    load_word_index,
    offset_review,
    pad_sequences,
    reverse_word_index,
)

WORD_INDEX = {"the": 1, "movie": 2, "was": 3, "great": 4}


def _ragged(rows):
    arr = np.empty(len(rows), dtype=object)
    for i, row in enumerate(rows):
        arr[i] = list(row)
    return arr


def test_pad_truncates_from_the_left():
    assert pad_sequences([[1, 2, 3, 4, 5]], maxlen=3).tolist() == [[3, 4, 5]]


def test_pad_on_the_left_with_zero():
    out = pad_sequences([[7, 8], [], [1, 2, 3]], maxlen=4)
    assert out.tolist() == [[0, 0, 7, 8], [0, 0, 0, 0], [0, 1, 2, 3]]
    assert out.dtype == np.int64


def test_post_padding_and_truncating():
    assert pad_sequences([[1, 2, 3, 4, 5]], maxlen=3, truncating="post").tolist() == [[1, 2, 3]]
    assert pad_sequences([[1, 2]], maxlen=4, padding="post").tolist() == [[1, 2, 0, 0]]


def test_pad_rejects_bad_arguments():
    with pytest.raises(ValueError):
        pad_sequences([[1]], maxlen=0)
    with pytest.raises(ValueError):
        pad_sequences([[1]], maxlen=2, padding="middle")


def test_offset_reserves_control_indices():
    assert offset_review([1, 2, 3]) == [START, 4, 5, 6]
    assert offset_review([1, 2, 3], add_start=False) == [4, 5, 6]
    assert offset_review([1, 9000], num_words=100) == [START, 4, OOV]


def test_decode_subtracts_offset():
    assert decode_review([START, 1 + INDEX_FROM, 4 + INDEX_FROM], WORD_INDEX) == "? the great"


def test_low_indices_never_hit_vocabulary():
    # a vocabulary with negative ids would be hit if the offset were applied blindly
    reverse = {-3: "pad-word", -2: "start-word", -1: "oov-word", 1: "the"}
    assert decode_review([PAD, START, OOV], reverse_index=reverse) == " ".join([PLACEHOLDER] * 3)


def test_unknown_index_uses_placeholder():
    assert decode_review([999], WORD_INDEX) == PLACEHOLDER


def test_decode_requires_vocabulary():
    with pytest.raises(ValueError):
        decode_review([4])


def test_reverse_word_index():
    assert reverse_word_index(WORD_INDEX)[4] == "great"


def test_load_imdb_npz(tmp_path):
    path = tmp_path / "imdb.npz"
    np.savez(
        path,
        x_train=_ragged([[1, 2, 3], [4, 50]]),
        y_train=np.array([1, 0]),
        x_test=_ragged([[2]]),
        y_test=np.array([1]),
    )
    (x_train, y_train), (x_test, y_test) = load_imdb(path, num_words=20)
    assert x_train == [[START, 4, 5, 6], [START, 7, OOV]]
    assert y_train.tolist() == [1, 0]
    assert x_test == [[START, 5]]
    assert y_test.tolist() == [1]


def test_load_word_index(tmp_path):
    path = tmp_path / "imdb_word_index.json"
    path.write_text(json.dumps(WORD_INDEX), encoding="utf-8")
    assert load_word_index(path) == WORD_INDEX


def test_review_dataset_and_loaders():
    x = pad_sequences([[4, 5, 6]] * 10, maxlen=5)
    y = np.array([0, 1] * 5)
    ds = ReviewDataset(x, y)
    tokens, label = ds[1]
    assert tokens.tolist() == [0, 0, 4, 5, 6]
    assert label.item() == 1.0

    train, val, test = build_review_loaders(x, y, x[:3], y[:3], batch_size=4, val_fraction=0.2)
    assert len(train.dataset) == 8
    assert len(val.dataset) == 2
    assert len(test.dataset) == 3


def test_review_dataset_length_mismatch():
    with pytest.raises(ValueError):
        ReviewDataset(np.zeros((3, 2)), np.zeros(2))
