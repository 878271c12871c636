from __future__ import annotations

import numpy as np
import pytest
import torch

from seqlab.forecasting.autoregressive import seq2seq_callables, seq2seq_forecast
from seqlab.models.baselines.naive import NaiveForecaster, SeasonalNaiveForecaster
from seqlab.models.classifier import SentimentClassifier
from seqlab.models.recurrent import RecurrentForecaster, Seq2SeqForecaster


@pytest.mark.parametrize("cell", ["lstm", "gru"])
def test_recurrent_forecaster_shapes(cell):
    model = RecurrentForecaster(hidden_dim=8, num_layers=2, dropout=0.1, horizon=3, cell=cell)
    out = model(torch.randn(4, 12, 1))
    assert out.shape == (4, 3)


def test_unknown_cell():
    with pytest.raises(ValueError):
        RecurrentForecaster(cell="transformer")


def test_seq2seq_teacher_forcing_matches_stepwise_decoding():
    torch.manual_seed(0)
    model = Seq2SeqForecaster(hidden_dim=6).eval()
    x = torch.randn(2, 10, 1)
    y_lag = torch.randn(2, 4, 1)
    with torch.no_grad():
        full = model(x, y_lag)
        state = model.encode(x)
        steps = []
        for t in range(4):
            y, state = model.decode_step(y_lag[:, t:t + 1], state)
            steps.append(y)
    assert full.shape == (2, 4)
    assert torch.allclose(full, torch.cat(steps, dim=1), atol=1e-6)


def test_seq2seq_state_pair_shapes():
    model = Seq2SeqForecaster(hidden_dim=5, num_layers=2)
    h, c = model.encode(torch.randn(3, 7, 1))
    assert h.shape == c.shape == (2, 3, 5)
    y, (h2, c2) = model.decode_step(torch.randn(3, 1, 1), (h, c))
    assert y.shape == (3, 1)
    assert h2.shape == (2, 3, 5)


def test_seq2seq_generate_matches_stepwise_forecast():
    torch.manual_seed(0)
    model = Seq2SeqForecaster(hidden_dim=8).eval()
    seed = np.sin(np.linspace(0, 3, 12))
    encode, decode_step = seq2seq_callables(model)
    expected = seq2seq_forecast(encode, decode_step, seed, 5)
    with torch.no_grad():
        got = model.generate(torch.as_tensor(seed, dtype=torch.float32).view(1, -1, 1), 5)
    assert got.shape == (1, 5)
    np.testing.assert_allclose(got[0].numpy(), expected, rtol=1e-5, atol=1e-6)


@pytest.mark.parametrize("cell", ["lstm", "gru"])
def test_sentiment_classifier_outputs_one_logit(cell):
    model = SentimentClassifier(vocab_size=50, embed_dim=4, hidden_dim=6, cell=cell)
    tokens = torch.randint(0, 50, (5, 20))
    assert model(tokens).shape == (5,)


def test_padding_embedding_is_zero():
    model = SentimentClassifier(vocab_size=10)
    assert torch.count_nonzero(model.embedding.weight[0]) == 0


def test_naive_repeats_last_value():
    x = torch.arange(6, dtype=torch.float32).view(2, 3, 1)
    assert NaiveForecaster(horizon=2).predict(x).tolist() == [[2.0, 2.0], [5.0, 5.0]]


def test_seasonal_naive_repeats_previous_cycle():
    x = torch.arange(6, dtype=torch.float32).view(1, 6, 1)
    model = SeasonalNaiveForecaster(horizon=5, seasonality=2)
    assert model.predict(x).tolist() == [[4.0, 5.0, 4.0, 5.0, 4.0]]
    assert SeasonalNaiveForecaster(horizon=1, seasonality=3).predict(x).tolist() == [[3.0]]


def test_seasonal_naive_needs_full_cycle():
    with pytest.raises(ValueError):
        SeasonalNaiveForecaster(horizon=1, seasonality=132).predict(torch.zeros(1, 12, 1))
