"""
Pytest tests for typology classification (Source / Destination / Mule / Normal).
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from chaintrace.analysis_engine.graph import build_wallet_graph
from chaintrace.analysis_engine.models import Role, WalletProfile
from chaintrace.analysis_engine.typology import (
    TypologyConfig,
    classify_wallet,
    classify_wallets,
    count_rapid_relays,
    flow_ratio,
)


def test_smurfing_roles(smurfing_ledger):
    wallets = build_wallet_graph(smurfing_ledger)
    counts = classify_wallets(wallets)
    assert wallets["A"].role is Role.SOURCE
    assert wallets["C"].role is Role.DESTINATION
    for name in ("B1", "B2", "B3"):
        assert wallets[name].role is Role.MULE
        assert wallets[name].rapid_relay_count == 1
        assert any(f.startswith("Rapid relay") for f in wallets[name].flags)
    assert counts[Role.MULE] == 3
    assert counts[Role.NORMAL] == 0


def test_civilians_are_normal(civilian_ledger):
    wallets = build_wallet_graph(civilian_ledger)
    classify_wallets(wallets)
    assert {w.role for w in wallets.values()} == {Role.NORMAL}
    assert all(w.flags == [] for w in wallets.values())


def test_source_takes_precedence_over_destination(tx):
    # 3 out, 1 in: fan-out rule matches first
    txs = [tx("i", "Z", "S", 10)] + [tx(f"o{i}", "S", f"R{i}", 100) for i in range(3)]
    wallets = build_wallet_graph(txs)
    assert classify_wallet(wallets["S"]) is Role.SOURCE
    assert wallets["S"].flags == ["High fan-out detected: sent 3 transfers while receiving 1."]


def test_destination_flag_text(tx):
    wallets = build_wallet_graph([tx(f"t{i}", f"S{i}", "D", 5) for i in range(4)])
    assert classify_wallet(wallets["D"]) is Role.DESTINATION
    assert wallets["D"].flags == ["High fan-in detected: received 4 transfers while sending 0."]


def test_fan_out_with_two_inbound_is_not_source(tx):
    txs = [tx("i1", "X", "S", 100), tx("i2", "Y", "S", 100)]
    txs += [tx(f"o{i}", "S", f"R{i}", 10) for i in range(3)]
    wallets = build_wallet_graph(txs)
    # 30 / 200 = 0.15: outside the pass-through band too
    assert classify_wallet(wallets["S"]) is Role.NORMAL


@pytest.mark.parametrize(
    "sent, expected",
    [
        (900, Role.NORMAL),
        (901, Role.MULE),
        (1000, Role.MULE),
        (1099, Role.MULE),
        (1100, Role.NORMAL),
    ],
)
def test_pass_through_band_is_exclusive(tx, sent, expected):
    wallets = build_wallet_graph([tx("in", "X", "M", 1000, 0), tx("out", "M", "Y", sent, 300)])
    assert classify_wallet(wallets["M"]) is expected


def test_flow_ratio_divides_by_one_only_without_receipts():
    assert flow_ratio(WalletProfile("w", total_sent=5.0, total_received=0.0)) == 5.0
    assert flow_ratio(WalletProfile("w", total_sent=5.0, total_received=0.5)) == 10.0
    assert flow_ratio(WalletProfile("w", total_sent=5.0, total_received=10.0)) == 0.5


def test_sub_unit_pass_through_is_mule(tx):
    wallets = build_wallet_graph([tx("in", "X", "M", 0.5, 0), tx("out", "M", "Y", 0.49, 10)])
    m = wallets["M"]
    assert classify_wallet(m) is Role.MULE
    assert m.flow_ratio == pytest.approx(0.98)
    assert m.rapid_relay_count == 1


def test_zero_amount_inbound_then_outbound_is_mule(tx):
    # nothing received, so 1.0 sent over a divisor of 1 lands inside the band
    wallets = build_wallet_graph([tx("in", "X", "M", 0, 0), tx("out", "M", "Y", 1.0, 10)])
    m = wallets["M"]
    assert classify_wallet(m) is Role.MULE
    assert m.flow_ratio == 1.0
    assert m.in_degree == 1 and m.out_degree == 1


def test_self_transfer_wallet_is_mule_without_rapid_relay(tx):
    wallets = build_wallet_graph([tx("s1", "X", "X", 40, 0)])
    x = wallets["X"]
    assert (x.in_degree, x.out_degree) == (1, 1)
    assert classify_wallet(x) is Role.MULE
    assert x.flow_ratio == 1.0
    # the single transfer is not followed by a later outgoing one
    assert x.rapid_relay_count == 0
    assert len(x.flags) == 1


def test_rapid_relay_window_is_strict(tx):
    wallets = build_wallet_graph([tx("in", "X", "M", 100, 0), tx("out", "M", "Y", 100, 60)])
    m = wallets["M"]
    assert count_rapid_relays(m) == 0
    assert count_rapid_relays(m, timedelta(minutes=61)) == 1
    assert classify_wallet(m) is Role.MULE
    assert m.rapid_relay_count == 0
    assert len(m.flags) == 1


def test_rapid_relay_counts_each_incoming_once(tx):
    txs = [
        tx("in1", "X", "M", 100, 0),
        tx("in2", "Y", "M", 100, 10),
        tx("out1", "M", "Z", 100, 20),
        tx("out2", "M", "Z", 95, 25),
    ]
    wallets = build_wallet_graph(txs)
    assert count_rapid_relays(wallets["M"]) == 2


def test_rapid_relay_ignores_earlier_outgoing(tx):
    txs = [tx("out", "M", "Z", 100, 0), tx("in", "X", "M", 100, 10)]
    wallets = build_wallet_graph(txs)
    assert count_rapid_relays(wallets["M"]) == 0


def test_classification_is_idempotent(smurfing_ledger):
    wallets = build_wallet_graph(smurfing_ledger)
    classify_wallets(wallets)
    snapshot = {a: (w.role, list(w.flags)) for a, w in wallets.items()}
    classify_wallets(wallets)
    assert {a: (w.role, list(w.flags)) for a, w in wallets.items()} == snapshot


def test_custom_thresholds(tx):
    wallets = build_wallet_graph([tx(f"t{i}", "S", f"R{i}", 1) for i in range(2)])
    assert classify_wallet(wallets["S"]) is Role.NORMAL
    assert classify_wallet(wallets["S"], TypologyConfig(fan_degree_threshold=2)) is Role.SOURCE
