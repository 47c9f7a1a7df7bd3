"""
Result export: graph payload for renderers, wallet filtering, JSON report.

Nothing here mutates an AnalysisResult; every function reads a completed
snapshot and returns plain data.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

from chaintrace.analysis_engine.models import AnalysisResult, Role, WalletProfile


@dataclass(frozen=True)
class FilterOptions:
    """
    Wallet list filter for review screens and reports.

    min_score: keep wallets with suspicion_score >= min_score.
    show_normal: include Normal-role wallets.
    min_amount: keep wallets whose throughput (sent + received) >= min_amount.
    token: keep wallets that touched at least one transaction in this token.
    """

    min_score: float = 0.0
    show_normal: bool = True
    min_amount: float = 0.0
    token: str | None = None


def _node_size(profile: WalletProfile) -> float:
    return math.sqrt(profile.total_received + profile.total_sent) + 1


def build_graph_data(result: AnalysisResult) -> dict[str, list[dict[str, Any]]]:
    """
    Nodes and links for an external graph renderer.

    One node per wallet (size grows with throughput) and one link per
    transaction, directed sender -> receiver.
    """
    nodes = [
        {
            "id": w.address,
            "role": w.role.value,
            "val": _node_size(w),
            "risk_level": w.risk_level.value,
            "suspicion_score": w.suspicion_score,
            "chain_id": w.chain_id,
        }
        for w in result.wallets.values()
    ]
    links = [
        {"source": tx.from_wallet, "target": tx.to_wallet, "amount": tx.amount}
        for tx in result.transactions
    ]
    return {"nodes": nodes, "links": links}


def filter_wallets(result: AnalysisResult, options: FilterOptions | None = None) -> list[WalletProfile]:
    """Wallets matching options, highest suspicion first (ties keep mapping order)."""
    opts = options or FilterOptions()
    token = opts.token.strip().upper() if opts.token else None
    out: list[WalletProfile] = []
    for w in result.wallets.values():
        if w.suspicion_score < opts.min_score:
            continue
        if not opts.show_normal and w.role is Role.NORMAL:
            continue
        if w.total_sent + w.total_received < opts.min_amount:
            continue
        if token and not any(tx.token.upper() == token for tx in w.transactions):
            continue
        out.append(w)
    out.sort(key=lambda w: -w.suspicion_score)
    return out


def result_to_dict(result: AnalysisResult, *, include_transactions: bool = True) -> dict[str, Any]:
    """JSON-serialisable report: summary, wallets, chains, optionally transactions."""
    report: dict[str, Any] = {
        "summary": result.summary(),
        "wallets": {address: w.to_dict() for address, w in result.wallets.items()},
        "laundering_chains": [c.to_dict() for c in result.laundering_chains],
    }
    if include_transactions:
        report["transactions"] = [tx.to_dict() for tx in result.transactions]
    return report


def result_to_json(result: AnalysisResult, indent: int = 2, **kwargs: Any) -> str:
    """Serialise the report to a pretty-printed JSON string."""
    return json.dumps(result_to_dict(result, **kwargs), indent=indent, default=str)
