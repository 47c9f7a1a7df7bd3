"""
Live ledger feed over HTTP: GET a JSON ledger page and normalize it.

The endpoint returns either a JSON list of transfer records or an object with a
"transactions" list. HttpLedgerFeed is an awaitable callable, so it plugs into
LiveSession as the fetch function. Transport and decoding failures raise
IngestionError subclasses; the live session keeps its prior state on failure.
"""

from __future__ import annotations

from typing import Any

import httpx

from chaintrace.analysis_engine.models import Transaction
from chaintrace.chaintrace_logging import get_logger
from chaintrace.core.exceptions import FeedUnavailableError, IngestionError
from chaintrace.ingestion.normalizer import DEFAULT_TOKEN, normalize_records

logger = get_logger(__name__)

DEFAULT_FEED_TIMEOUT_SEC = 15.0


class HttpLedgerFeed:
    """
    Fetch function for live mode backed by an HTTP JSON endpoint.

    transport: optional httpx transport (e.g. httpx.MockTransport in tests).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_FEED_TIMEOUT_SEC,
        params: dict[str, Any] | None = None,
        default_token: str = DEFAULT_TOKEN,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("feed url must be non-empty")
        self.url = url.strip()
        self._timeout = timeout
        self._params = dict(params or {})
        self._default_token = default_token
        self._transport = transport

    async def __call__(self) -> list[Transaction]:
        return await self.fetch()

    async def fetch(self) -> list[Transaction]:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                resp = await client.get(self.url, params=self._params)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("feed_fetch_failed", url=self.url, error=str(e))
                raise FeedUnavailableError(f"feed request failed: {e}", source=self.url) from e
            try:
                data = resp.json()
            except ValueError as e:
                raise IngestionError(f"feed returned invalid JSON: {e}", source=self.url) from e

        records = data.get("transactions") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise IngestionError("feed payload has no transaction list", source=self.url)
        transactions = normalize_records(records, default_token=self._default_token)
        logger.debug("feed_fetched", url=self.url, records=len(records), transactions=len(transactions))
        return transactions
