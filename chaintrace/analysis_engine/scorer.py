"""
Risk scorer: role weight plus modifiers -> suspicion score in [0, 1] and risk level.

Additive and saturating:
    score = role_weight
          + velocity bonus     (in_degree + out_degree > 20)
          + volume bonus       (total_sent > 10000)
          + rapid relay bonus  (wallet carries a rapid-relay flag)
    score = min(score, 1.0)

Risk level: < 0.3 LOW, < 0.6 MEDIUM, < 0.9 HIGH, else CRITICAL.
Total and idempotent: the score is recomputed from the profile on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from chaintrace.analysis_engine.models import RiskLevel, Role, WalletProfile
from chaintrace.analysis_engine.typology import has_rapid_relay_flag
from chaintrace.chaintrace_logging import get_logger, short_wallet

logger = get_logger(__name__)

ROLE_WEIGHTS: dict[Role, float] = {
    Role.SOURCE: 0.7,
    Role.DESTINATION: 0.8,
    Role.MULE: 0.6,
    Role.NORMAL: 0.0,
}

VELOCITY_DEGREE_THRESHOLD = 20
VELOCITY_BONUS = 0.15
VOLUME_SENT_THRESHOLD = 10_000.0
VOLUME_BONUS = 0.1
RAPID_RELAY_BONUS = 0.15
MAX_SCORE = 1.0
# Rounding keeps level boundaries exact (0.75 + 0.15 must land on 0.9)
SCORE_DECIMALS = 4

RISK_MEDIUM_FROM = 0.3
RISK_HIGH_FROM = 0.6
RISK_CRITICAL_FROM = 0.9


@dataclass(frozen=True)
class ScoringConfig:
    """Weights and thresholds for suspicion scoring."""

    role_weights: dict[Role, float] = field(default_factory=lambda: dict(ROLE_WEIGHTS))
    velocity_degree_threshold: int = VELOCITY_DEGREE_THRESHOLD
    velocity_bonus: float = VELOCITY_BONUS
    volume_sent_threshold: float = VOLUME_SENT_THRESHOLD
    volume_bonus: float = VOLUME_BONUS
    rapid_relay_bonus: float = RAPID_RELAY_BONUS


def risk_level_for(score: float) -> RiskLevel:
    """Map a suspicion score to its risk level (monotone)."""
    if score < RISK_MEDIUM_FROM:
        return RiskLevel.LOW
    if score < RISK_HIGH_FROM:
        return RiskLevel.MEDIUM
    if score < RISK_CRITICAL_FROM:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def _confidence_from_evidence(profile: WalletProfile, breakdown: dict[str, float]) -> float:
    """More independent signals and more observed transfers -> higher confidence."""
    if profile.role is Role.NORMAL:
        return 0.0
    base = 0.4 + 0.1 * len(breakdown) + 0.05 * min(max(profile.degree - 2, 0), 4)
    return min(1.0, round(base, 2))


def score_wallet(profile: WalletProfile, config: ScoringConfig | None = None) -> float:
    """
    Score one classified wallet in place.

    Sets suspicion_score, risk_level, score_breakdown and confidence_score.
    Returns the suspicion score.
    """
    cfg = config or ScoringConfig()
    breakdown: dict[str, float] = {}

    role_weight = cfg.role_weights.get(profile.role, 0.0)
    if role_weight:
        breakdown["role"] = role_weight
    if profile.degree > cfg.velocity_degree_threshold:
        breakdown["velocity"] = cfg.velocity_bonus
    if profile.total_sent > cfg.volume_sent_threshold:
        breakdown["volume"] = cfg.volume_bonus
    if has_rapid_relay_flag(profile):
        breakdown["rapid_relay"] = cfg.rapid_relay_bonus

    score = round(min(sum(breakdown.values()), MAX_SCORE), SCORE_DECIMALS)
    profile.suspicion_score = score
    profile.risk_level = risk_level_for(score)
    profile.score_breakdown = breakdown
    profile.confidence_score = _confidence_from_evidence(profile, breakdown)

    if score > 0:
        logger.debug(
            "wallet_scored",
            wallet_id=short_wallet(profile.address),
            role=profile.role.value,
            suspicion_score=score,
            risk_level=profile.risk_level.value,
            breakdown=breakdown,
        )
    return score


def score_wallets(
    wallets: dict[str, WalletProfile] | Iterable[WalletProfile],
    config: ScoringConfig | None = None,
) -> dict[RiskLevel, int]:
    """Score every wallet in place; returns a count per risk level."""
    profiles = wallets.values() if isinstance(wallets, dict) else wallets
    counts: dict[RiskLevel, int] = {level: 0 for level in RiskLevel}
    for profile in profiles:
        score_wallet(profile, config)
        counts[profile.risk_level] += 1
    return counts


def count_suspicious(wallets: Iterable[WalletProfile], cutoff: float = 0.5) -> int:
    """Number of wallets whose suspicion score is strictly above cutoff."""
    return sum(1 for w in wallets if w.suspicion_score > cutoff)
