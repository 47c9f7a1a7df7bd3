"""
Typology classifier: assign each wallet one laundering role from its profile.

Rules are checked in strict precedence (first match wins):
  1. Source:      fan-out: out_degree >= threshold and in_degree <= 1
  2. Destination: fan-in:  in_degree >= threshold and out_degree <= 1
  3. Mule:        pass-through: sends and receives, flow ratio inside the band
  4. Normal:      everything else

Mules additionally get a temporal velocity check that counts incoming
transfers relayed onward within the rapid-relay window. Every matched rule
appends one human-readable flag; the scorer reads the rapid-relay flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from chaintrace.analysis_engine.models import Role, WalletProfile
from chaintrace.chaintrace_logging import get_logger, short_wallet

logger = get_logger(__name__)

FAN_DEGREE_THRESHOLD = 3
FAN_COUNTER_DEGREE_MAX = 1
PASS_THROUGH_RATIO_LOW = 0.9
PASS_THROUGH_RATIO_HIGH = 1.1
RAPID_RELAY_WINDOW = timedelta(hours=1)
# Divisor floor for wallets that never received funds
FLOW_RATIO_MIN_DIVISOR = 1.0

RAPID_RELAY_FLAG_PREFIX = "Rapid relay"


@dataclass(frozen=True)
class TypologyConfig:
    """Thresholds for role classification; defaults are the production rules."""

    fan_degree_threshold: int = FAN_DEGREE_THRESHOLD
    fan_counter_degree_max: int = FAN_COUNTER_DEGREE_MAX
    pass_through_ratio_low: float = PASS_THROUGH_RATIO_LOW
    pass_through_ratio_high: float = PASS_THROUGH_RATIO_HIGH
    rapid_relay_window: timedelta = RAPID_RELAY_WINDOW


def flow_ratio(profile: WalletProfile) -> float:
    """total_sent / total_received; a wallet with no receipts divides by 1."""
    return profile.total_sent / (profile.total_received or FLOW_RATIO_MIN_DIVISOR)


def has_rapid_relay_flag(profile: WalletProfile) -> bool:
    return any(f.startswith(RAPID_RELAY_FLAG_PREFIX) for f in profile.flags)


def count_rapid_relays(profile: WalletProfile, window: timedelta = RAPID_RELAY_WINDOW) -> int:
    """
    Count incoming transfers followed by an outgoing one strictly within window.

    Transactions are ordered by timestamp (stable for ties). For each incoming
    transaction only the first qualifying later outgoing transaction is
    considered, so each incoming transfer counts at most once.
    """
    address = profile.address
    ordered = sorted(profile.transactions, key=lambda tx: tx.timestamp)
    relays = 0
    for i, tx_in in enumerate(ordered):
        if tx_in.to_wallet != address:
            continue
        for tx_out in ordered[i + 1:]:
            if tx_out.timestamp - tx_in.timestamp >= window:
                break
            if tx_out.from_wallet == address:
                relays += 1
                break
    return relays


def _format_window(window: timedelta) -> str:
    hours = window.total_seconds() / 3600.0
    if hours == 1:
        return "1 hour"
    if hours >= 1:
        return f"{hours:g} hours"
    return f"{window.total_seconds() / 60.0:g} minutes"


def classify_wallet(profile: WalletProfile, config: TypologyConfig | None = None) -> Role:
    """
    Classify one wallet in place: sets role, flags, flow_ratio, rapid_relay_count.

    Role and flags are reset first, so re-running on an unchanged profile
    yields the same role and flags. Returns the assigned role.
    """
    cfg = config or TypologyConfig()
    profile.role = Role.NORMAL
    profile.flags = []
    profile.rapid_relay_count = 0
    ratio = flow_ratio(profile)
    profile.flow_ratio = ratio

    if (
        profile.out_degree >= cfg.fan_degree_threshold
        and profile.in_degree <= cfg.fan_counter_degree_max
    ):
        profile.role = Role.SOURCE
        profile.flags.append(
            f"High fan-out detected: sent {profile.out_degree} transfers "
            f"while receiving {profile.in_degree}."
        )
    elif (
        profile.in_degree >= cfg.fan_degree_threshold
        and profile.out_degree <= cfg.fan_counter_degree_max
    ):
        profile.role = Role.DESTINATION
        profile.flags.append(
            f"High fan-in detected: received {profile.in_degree} transfers "
            f"while sending {profile.out_degree}."
        )
    elif (
        profile.in_degree > 0
        and profile.out_degree > 0
        and cfg.pass_through_ratio_low < ratio < cfg.pass_through_ratio_high
    ):
        profile.role = Role.MULE
        profile.flags.append(
            f"Pass-through behavior: relayed {ratio * 100:.0f}% of funds received "
            f"(flow ratio {ratio:.2f}, {profile.in_degree} in / {profile.out_degree} out)."
        )
        relays = count_rapid_relays(profile, cfg.rapid_relay_window)
        profile.rapid_relay_count = relays
        if relays > 0:
            profile.flags.append(
                f"{RAPID_RELAY_FLAG_PREFIX}: {relays} incoming transfer(s) forwarded "
                f"within {_format_window(cfg.rapid_relay_window)}."
            )

    if profile.role is not Role.NORMAL:
        logger.debug(
            "wallet_classified",
            wallet_id=short_wallet(profile.address),
            role=profile.role.value,
            in_degree=profile.in_degree,
            out_degree=profile.out_degree,
            flow_ratio=round(ratio, 4),
            rapid_relays=profile.rapid_relay_count,
        )
    return profile.role


def classify_wallets(
    wallets: dict[str, WalletProfile] | Iterable[WalletProfile],
    config: TypologyConfig | None = None,
) -> dict[Role, int]:
    """Classify every wallet in place; returns a count per role."""
    profiles = wallets.values() if isinstance(wallets, dict) else wallets
    counts: dict[Role, int] = {role: 0 for role in Role}
    for profile in profiles:
        counts[classify_wallet(profile, config)] += 1
    logger.debug("typology_done", role_counts={r.value: n for r, n in counts.items()})
    return counts
