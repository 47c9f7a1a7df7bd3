"""
Demo ledger with an embedded smurfing scenario.

Source_Alpha fans 1000 USDT out to three mules, each mule forwards 995 to
Aggregator_Omega within the hour, and two civilians make small unrelated
payments in the background.
"""

from __future__ import annotations

DEMO_HEADER = "tx_id,from_wallet,to_wallet,amount,timestamp,token"

DEMO_ROWS = (
    "tx_1,Source_Alpha,Mule_A,1000,2023-10-27T10:00:00Z,USDT",
    "tx_2,Source_Alpha,Mule_B,1000,2023-10-27T10:05:00Z,USDT",
    "tx_3,Source_Alpha,Mule_C,1000,2023-10-27T10:10:00Z,USDT",
    "tx_4,Mule_A,Aggregator_Omega,995,2023-10-27T10:30:00Z,USDT",
    "tx_5,Mule_B,Aggregator_Omega,995,2023-10-27T10:35:00Z,USDT",
    "tx_6,Mule_C,Aggregator_Omega,995,2023-10-27T10:40:00Z,USDT",
    "tx_7,Civilian_Bob,Civilian_Alice,50,2023-10-27T12:00:00Z,USDT",
    "tx_8,Civilian_Alice,Shop_X,20,2023-10-27T14:00:00Z,USDT",
)


def generate_demo_ledger() -> str:
    """Return the demo ledger as CSV text (header + rows)."""
    return DEMO_HEADER + "\n" + "\n".join(DEMO_ROWS) + "\n"
