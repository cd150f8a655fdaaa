"""Market confidence score and the daily stance derived from market-wide signals."""
from __future__ import annotations

from dataclasses import dataclass


def compute_confidence(liquidity_usd: float, volume_24h_usd: float, volatility: float) -> int:
    """Confidence 0-100 from depth and activity, penalized by volatility.

    Liquidity saturates at $50k and 24h volume at $100k; volatility of 0.2 or
    more halves the score.
    """
    liq_score = min(max(liquidity_usd, 0.0) / 50_000, 1.0)
    vol_score = min(max(volume_24h_usd, 0.0) / 100_000, 1.0)
    vol_penalty = min(max(volatility, 0.0) * 5, 1.0)

    base = liq_score * 0.5 + vol_score * 0.5
    final = base * (1 - 0.5 * vol_penalty)
    return int(final * 100 + 0.5)


@dataclass(frozen=True)
class TodayAction:
    label: str
    description: str


def today_action(whale_index: float, avg_confidence: float, avg_volatility: float) -> TodayAction:
    """Ordered rules, first match wins."""
    if avg_volatility > 0.18 and whale_index > 70:
        return TodayAction(
            "Cautiously aggressive",
            "Whales are very active and volatility is high. Only small, "
            "aggressive entries on your highest-conviction ideas.",
        )
    if avg_confidence > 70 and whale_index >= 40 and avg_volatility < 0.12:
        return TodayAction(
            "Light risk is fine",
            "Markets are deep and fairly clear with moderate whale activity. "
            "A good day to focus on one or two markets you trust.",
        )
    if avg_confidence < 50 and whale_index < 30:
        return TodayAction(
            "Wait and watch",
            "Confidence is low and whales are quiet. Watching and taking notes "
            "beats opening new positions today.",
        )
    return TodayAction(
        "Neutral",
        "Signals are mixed. Keep position sizes small and avoid loading up on a single idea.",
    )
