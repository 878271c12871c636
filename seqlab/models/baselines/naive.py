from __future__ import annotations

import torch


class NaiveForecaster:
    """
    Persistence baseline: predict the last observed value for all future steps.
    """

    def __init__(self, horizon: int):
        self.horizon = horizon

    @torch.no_grad()
    def predict(self, x_lookback: torch.Tensor) -> torch.Tensor:
        # x_lookback: [B, L, 1]
        return x_lookback[:, -1, 0].unsqueeze(1).repeat(1, self.horizon)


class SeasonalNaiveForecaster:
    """
    Seasonal naive baseline. For monthly sunspots the default season is the
    ~11-year solar cycle (132 months): repeat the value observed one cycle earlier.
    """

    def __init__(self, horizon: int, seasonality: int = 132):
        self.horizon = horizon
        self.seasonality = seasonality

    @torch.no_grad()
    def predict(self, x_lookback: torch.Tensor) -> torch.Tensor:
        # x_lookback: [B, L, 1] where L >= seasonality
        if x_lookback.size(1) < self.seasonality:
            raise ValueError(
                f"lookback {x_lookback.size(1)} shorter than seasonality {self.seasonality}"
            )
        pattern = x_lookback[:, -self.seasonality:, 0]  # [B, S]
        if self.horizon <= self.seasonality:
            return pattern[:, : self.horizon]
        # tile to cover horizon
        reps = (self.horizon + self.seasonality - 1) // self.seasonality
        tiled = pattern.repeat(1, reps)
        return tiled[:, : self.horizon]
