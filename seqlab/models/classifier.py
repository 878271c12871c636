from __future__ import annotations

import torch
import torch.nn as nn

from ..data.text import PAD
from .recurrent import CellType, make_rnn


class SentimentClassifier(nn.Module):
    """Embedding -> recurrent layer -> single logit (positive review)."""

    def __init__(
        self,
        vocab_size: int,
        embed_dim: int = 32,
        hidden_dim: int = 32,
        num_layers: int = 1,
        dropout: float = 0.0,
        cell: CellType = "lstm",
    ):
        super().__init__()
        self.cell = cell
        self.embedding = nn.Embedding(vocab_size, embed_dim, padding_idx=PAD)
        self.rnn = make_rnn(cell, embed_dim, hidden_dim, num_layers, dropout)
        self.head = nn.Linear(hidden_dim, 1)

    def forward(self, tokens: torch.Tensor) -> torch.Tensor:
        # tokens: [B, maxlen] (left padded, so the last step sees the review end)
        z = self.embedding(tokens)
        _, h = self.rnn(z)
        h_n = h[0] if self.cell == "lstm" else h
        return self.head(h_n[-1]).squeeze(-1)  # [B]
