from __future__ import annotations

from typing import Literal, Tuple

import torch
import torch.nn as nn

CellType = Literal["lstm", "gru"]

State = Tuple[torch.Tensor, torch.Tensor]


def make_rnn(cell: CellType, input_dim: int, hidden_dim: int, num_layers: int, dropout: float) -> nn.Module:
    if cell == "lstm":
        rnn_cls = nn.LSTM
    elif cell == "gru":
        rnn_cls = nn.GRU
    else:
        raise ValueError(f"Unknown recurrent cell: {cell!r}")
    return rnn_cls(
        input_size=input_dim,
        hidden_size=hidden_dim,
        num_layers=num_layers,
        dropout=dropout if num_layers > 1 else 0.0,
        batch_first=True,
    )


class RecurrentForecaster(nn.Module):
    def __init__(
        self,
        input_dim: int = 1,
        hidden_dim: int = 64,
        num_layers: int = 1,
        dropout: float = 0.0,
        horizon: int = 1,
        cell: CellType = "lstm",
    ):
        super().__init__()
        self.horizon = horizon
        self.cell = cell
        self.rnn = make_rnn(cell, input_dim, hidden_dim, num_layers, dropout)
        self.head = nn.Linear(hidden_dim, horizon)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        # x: [B, L, F]
        _, h = self.rnn(x)
        h_n = h[0] if self.cell == "lstm" else h
        return self.head(h_n[-1])  # [B, horizon]


class Seq2SeqForecaster(nn.Module):
    """
    LSTM encoder-decoder. The encoder summarises the lookback into an ``(h, c)``
    pair; the decoder consumes that pair plus the previous value one step at a
    time. ``encode`` and ``decode_step`` reuse the trained layers directly, so
    inference needs no separately built sub-models.
    """

    def __init__(self, input_dim: int = 1, hidden_dim: int = 64, num_layers: int = 1, dropout: float = 0.0):
        super().__init__()
        self.encoder = make_rnn("lstm", input_dim, hidden_dim, num_layers, dropout)
        self.decoder = make_rnn("lstm", input_dim, hidden_dim, num_layers, dropout)
        self.head = nn.Linear(hidden_dim, input_dim)

    def encode(self, x: torch.Tensor) -> State:
        # x: [B, L, F]
        _, (h, c) = self.encoder(x)
        return h, c

    def decode_step(self, y_prev: torch.Tensor, state: State) -> Tuple[torch.Tensor, State]:
        # y_prev: [B, 1, F]
        out, (h, c) = self.decoder(y_prev, state)
        return self.head(out[:, -1]), (h, c)  # [B, F]

    def forward(self, x: torch.Tensor, target_lag: torch.Tensor) -> torch.Tensor:
        # teacher forcing: target_lag [B, H, F] -> [B, H]
        state = self.encode(x)
        out, _ = self.decoder(target_lag, state)
        return self.head(out).squeeze(-1)

    def generate(self, x: torch.Tensor, horizon: int) -> torch.Tensor:
        # free-running decode from the last observed step: x [B, L, F] -> [B, horizon]
        state = self.encode(x)
        y_prev = x[:, -1:, :]
        outputs = []
        for _ in range(horizon):
            y, state = self.decode_step(y_prev, state)
            outputs.append(y)
            y_prev = y.unsqueeze(1)
        return torch.stack(outputs, dim=1).squeeze(-1)
