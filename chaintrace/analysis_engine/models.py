"""
Data models for analysis engine input and output.

Transaction is the immutable unit produced by ingestion. WalletProfile is the
per-address aggregate that each pipeline stage fills in place. LaunderingChain
and AnalysisResult are the run outputs handed to consumers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class Role(str, Enum):
    NORMAL = "Normal"
    SOURCE = "Source"
    MULE = "Mule"
    DESTINATION = "Destination"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SourceType(str, Enum):
    CSV = "CSV"
    LIVE_ETH = "LIVE_ETH"
    LIVE_BTC = "LIVE_BTC"
    LIVE_GLOBAL = "LIVE_GLOBAL"


@dataclass(frozen=True)
class Transaction:
    """
    Normalized transfer record between two wallets.

    Created by ingestion and never mutated; both endpoint profiles hold
    a reference to the same instance.
    """

    id: str
    from_wallet: str
    to_wallet: str
    amount: float
    timestamp: datetime
    """Timezone-aware (UTC) instant; gives transactions a total order."""
    token: str
    block_number: int | None = None
    """Block height for live-feed records; None for file input."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.id,
            "from_wallet": self.from_wallet,
            "to_wallet": self.to_wallet,
            "amount": self.amount,
            "timestamp": self.timestamp.isoformat(),
            "token": self.token,
            "block_number": self.block_number,
        }


@dataclass
class WalletProfile:
    """
    Aggregate view of one address over the analysed transaction set.

    Degrees and totals are filled by the graph builder; role, flags and
    flow_ratio by the classifier; score fields by the scorer; chain_id by
    the chain extractor. A fresh profile is built on every run.
    """

    address: str
    in_degree: int = 0
    out_degree: int = 0
    total_sent: float = 0.0
    total_received: float = 0.0
    transactions: list[Transaction] = field(default_factory=list)
    """Every transaction touching this wallet, in ingestion order."""
    role: Role = Role.NORMAL
    flags: list[str] = field(default_factory=list)
    flow_ratio: float = 0.0
    rapid_relay_count: int = 0
    suspicion_score: float = 0.0
    risk_level: RiskLevel = RiskLevel.LOW
    score_breakdown: dict[str, float] = field(default_factory=dict)
    confidence_score: float = 0.0
    chain_id: int | None = None
    label: str | None = None
    """Known-exchange label from the exchange directory, if any."""

    @property
    def is_suspicious(self) -> bool:
        return self.role is not Role.NORMAL

    @property
    def degree(self) -> int:
        return self.in_degree + self.out_degree

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "role": self.role.value,
            "flags": list(self.flags),
            "in_degree": self.in_degree,
            "out_degree": self.out_degree,
            "total_sent": self.total_sent,
            "total_received": self.total_received,
            "flow_ratio": self.flow_ratio,
            "rapid_relay_count": self.rapid_relay_count,
            "suspicion_score": self.suspicion_score,
            "risk_level": self.risk_level.value,
            "score_breakdown": dict(self.score_breakdown),
            "confidence_score": self.confidence_score,
            "chain_id": self.chain_id,
            "label": self.label,
            "tx_ids": [tx.id for tx in self.transactions],
        }


@dataclass(frozen=True)
class LaunderingChain:
    """
    Connected component of the suspicious-wallet subgraph.

    id: run-scoped, sequential from 1 in discovery order.
    wallets: member addresses in breadth-first discovery order.
    volume: sum of amounts of transactions with both endpoints in wallets.
    """

    id: int
    wallets: tuple[str, ...]
    volume: float

    @property
    def wallet_set(self) -> frozenset[str]:
        return frozenset(self.wallets)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "wallets": list(self.wallets), "volume": self.volume}


@dataclass(frozen=True)
class AnalysisResult:
    """
    Immutable snapshot of one pipeline run.

    A recompute produces a new AnalysisResult; a prior one is never updated.
    """

    wallets: Mapping[str, WalletProfile]
    transactions: tuple[Transaction, ...]
    total_volume: float
    suspicious_count: int
    laundering_chains: tuple[LaunderingChain, ...]
    timestamp: datetime
    source_type: SourceType

    def __post_init__(self) -> None:
        if not isinstance(self.wallets, MappingProxyType):
            object.__setattr__(self, "wallets", MappingProxyType(dict(self.wallets)))

    @property
    def suspicious_wallets(self) -> list[WalletProfile]:
        return [w for w in self.wallets.values() if w.is_suspicious]

    def summary(self) -> dict[str, Any]:
        return {
            "wallet_count": len(self.wallets),
            "transaction_count": len(self.transactions),
            "total_volume": self.total_volume,
            "suspicious_count": self.suspicious_count,
            "chain_count": len(self.laundering_chains),
            "timestamp": self.timestamp.isoformat(),
            "source_type": self.source_type.value,
        }
