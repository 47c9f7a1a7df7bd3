"""
Analysis engine package: wallet graph, typology, risk scoring, laundering chains.

Consumes normalized transactions and produces per-wallet roles, suspicion
scores and risk levels, plus the laundering chains linking suspicious wallets.
"""

from chaintrace.analysis_engine.models import (
    AnalysisResult,
    LaunderingChain,
    RiskLevel,
    Role,
    SourceType,
    Transaction,
    WalletProfile,
)
from chaintrace.analysis_engine.graph import build_wallet_graph, total_volume
from chaintrace.analysis_engine.typology import (
    TypologyConfig,
    classify_wallet,
    classify_wallets,
    count_rapid_relays,
    flow_ratio,
)
from chaintrace.analysis_engine.scorer import (
    ScoringConfig,
    count_suspicious,
    risk_level_for,
    score_wallet,
    score_wallets,
)
from chaintrace.analysis_engine.chains import extract_chains
from chaintrace.analysis_engine.enrichment import ExchangeDirectory, load_exchange_directory
from chaintrace.analysis_engine.export import (
    FilterOptions,
    build_graph_data,
    filter_wallets,
    result_to_dict,
    result_to_json,
)

__all__ = [
    "AnalysisResult",
    "LaunderingChain",
    "RiskLevel",
    "Role",
    "SourceType",
    "Transaction",
    "WalletProfile",
    "build_wallet_graph",
    "total_volume",
    "TypologyConfig",
    "classify_wallet",
    "classify_wallets",
    "count_rapid_relays",
    "flow_ratio",
    "ScoringConfig",
    "count_suspicious",
    "risk_level_for",
    "score_wallet",
    "score_wallets",
    "extract_chains",
    "ExchangeDirectory",
    "load_exchange_directory",
    "FilterOptions",
    "build_graph_data",
    "filter_wallets",
    "result_to_dict",
    "result_to_json",
]
