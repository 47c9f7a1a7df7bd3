"""
Laundering chain extraction: connected components of the suspicious subgraph.

Suspicious wallets are those with a non-Normal role. Two suspicious wallets are
adjacent when any transaction connects them directly, in either direction.
Components come from an undirected NetworkX graph whose nodes are added in
wallet-mapping order, so chain ids are stable for a given mapping. Every
suspicious wallet lands in exactly one chain; an isolated one forms a
single-wallet chain.
"""

from __future__ import annotations

from typing import Iterable, Mapping

import networkx as nx

from chaintrace.analysis_engine.models import LaunderingChain, Transaction, WalletProfile
from chaintrace.chaintrace_logging import get_logger

logger = get_logger(__name__)


def build_suspicious_graph(
    wallets: Mapping[str, WalletProfile],
    transactions: Iterable[Transaction],
) -> nx.Graph:
    """Undirected graph over suspicious wallets; edges are direct transfers between them."""
    G = nx.Graph()
    G.add_nodes_from(address for address, profile in wallets.items() if profile.is_suspicious)
    for tx in transactions:
        u, v = tx.from_wallet, tx.to_wallet
        # Self-transfers do not link anything
        if u != v and G.has_node(u) and G.has_node(v):
            G.add_edge(u, v)
    return G


def _ordered_members(G: nx.Graph, component: set[str], position: dict[str, int]) -> list[str]:
    """Component members in breadth-first order from its earliest wallet."""
    start = min(component, key=position.__getitem__)
    return [start] + [v for _, v in nx.bfs_edges(G, start)]


def extract_chains(
    wallets: Mapping[str, WalletProfile],
    transactions: Iterable[Transaction],
) -> list[LaunderingChain]:
    """
    Partition suspicious wallets into laundering chains.

    Sets chain_id on every suspicious profile (None on the rest). Chain volume
    is the sum of transaction amounts whose endpoints both lie in the chain.
    """
    transactions = list(transactions)
    G = build_suspicious_graph(wallets, transactions)
    position = {node: i for i, node in enumerate(G.nodes())}

    components = [_ordered_members(G, c, position) for c in nx.connected_components(G)]
    components.sort(key=lambda members: position[members[0]])

    chain_of: dict[str, int] = {}
    for i, members in enumerate(components):
        for address in members:
            chain_of[address] = i + 1

    volumes = [0.0] * len(components)
    for tx in transactions:
        cid = chain_of.get(tx.from_wallet)
        if cid is not None and chain_of.get(tx.to_wallet) == cid:
            volumes[cid - 1] += tx.amount

    for address, profile in wallets.items():
        profile.chain_id = chain_of.get(address)

    chains = [
        LaunderingChain(id=i + 1, wallets=tuple(members), volume=volumes[i])
        for i, members in enumerate(components)
    ]
    if chains:
        logger.debug(
            "chains_extracted",
            chain_count=len(chains),
            suspicious_wallets=G.number_of_nodes(),
            largest_chain=max(len(c.wallets) for c in chains),
        )
    return chains
