"""
Safe Transaction Service client.

  GET /api/v2/safes/{safe}/multisig-transactions/?nonce=N   transactions at a nonce
  GET /api/v1/safes/{safe}/multisig-transactions/?limit=N   latest transactions
  GET /api/v1/safes/{safe}/                                 Safe info (version)

Only rate-limit failures are retried, with exponential backoff.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

import requests

from .errors import AmbiguousTransaction, ApiErrorKind, SafeApiError
from .hashing import hashes_match
from .networks import DEFAULT_NETWORK, get_network

logger = logging.getLogger(__name__)

RetryCallback = Callable[[str, int, int, float], None]


class SafeApiClient:
    def __init__(self, network: str = DEFAULT_NETWORK, session: Optional[requests.Session] = None,
                 max_retries: int = 3, initial_delay: float = 1.0,
                 on_retry: Optional[RetryCallback] = None, timeout: float = 30,
                 api_url: Optional[str] = None):
        config = get_network(network)
        self.network = config.name
        self.chain_id = config.chain_id
        self.base_url = (api_url or config.api_url).rstrip("/")
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.on_retry = on_retry
        self.timeout = timeout

    # ---- transport ----

    def _get(self, path: str, params: Optional[Dict] = None, what: str = "request"):
        url = f"{self.base_url}{path}"
        logger.debug("GET %s %s", url, params or "")
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise SafeApiError(f"Failed to fetch {what}: {e}", kind=ApiErrorKind.NETWORK, response=e)

        if resp.status_code == 429:
            raise SafeApiError(f"Safe API rate limit exceeded: {resp.reason}",
                               kind=ApiErrorKind.RATE_LIMITED, status_code=429, response=resp.text)
        if resp.status_code == 404:
            raise SafeApiError(f"Safe API returned not found for {what}",
                               kind=ApiErrorKind.NOT_FOUND, status_code=404, response=resp.text)
        if not resp.ok:
            raise SafeApiError(f"Safe API request failed: {resp.reason}",
                               kind=ApiErrorKind.HTTP, status_code=resp.status_code, response=resp.text)
        try:
            return resp.json()
        except ValueError as e:
            raise SafeApiError(f"Safe API returned invalid JSON for {what}: {e}",
                               kind=ApiErrorKind.INVALID_RESPONSE, status_code=resp.status_code,
                               response=resp.text)

    def _with_retry(self, fn):
        for attempt in range(self.max_retries + 1):
            try:
                return fn()
            except SafeApiError as e:
                if not e.is_rate_limit or attempt == self.max_retries:
                    raise
                delay = self.initial_delay * 2 ** attempt
                message = f"Rate limited. Retrying in {delay:g}s (attempt {attempt + 1}/{self.max_retries})..."
                logger.warning(message)
                if self.on_retry:
                    self.on_retry(message, attempt + 1, self.max_retries, delay)
                time.sleep(delay)

    # ---- endpoints ----

    def fetch_transactions_by_nonce(self, safe_address: str, nonce: int) -> List[Dict]:
        """Every transaction proposed at ``nonce`` (replacements share a nonce)."""
        def fetch():
            data = self._get(f"/api/v2/safes/{safe_address}/multisig-transactions/",
                             {"nonce": nonce}, what="transaction")
            results = data.get("results") if isinstance(data, dict) else None
            if not isinstance(results, list):
                raise SafeApiError("Safe API response has no results list",
                                   kind=ApiErrorKind.INVALID_RESPONSE, response=data)
            if not results:
                raise SafeApiError(f"No transaction found for Safe {safe_address} at nonce {nonce}",
                                   kind=ApiErrorKind.NOT_FOUND, response=data)
            return results
        return self._with_retry(fetch)

    def fetch_transaction(self, safe_address: str, nonce: int, safe_tx_hash: Optional[str] = None) -> Dict:
        """
        Exactly one transaction at ``nonce``.

        With several candidates the caller must name one by ``safe_tx_hash``;
        otherwise AmbiguousTransaction is raised carrying all of them.
        """
        candidates = self.fetch_transactions_by_nonce(safe_address, nonce)
        if safe_tx_hash:
            for c in candidates:
                if hashes_match(c.get("safeTxHash") or "", safe_tx_hash):
                    return c
            raise SafeApiError(
                f"No transaction with safeTxHash {safe_tx_hash} for Safe {safe_address} at nonce {nonce}",
                kind=ApiErrorKind.NOT_FOUND,
            )
        if len(candidates) > 1:
            logger.warning("%d transactions share nonce %s for Safe %s", len(candidates), nonce, safe_address)
            raise AmbiguousTransaction(
                f"{len(candidates)} transactions found for Safe {safe_address} at nonce {nonce}. "
                "Select one by its safeTxHash.",
                candidates,
            )
        return candidates[0]

    def fetch_transactions(self, safe_address: str, limit: int = 20) -> Dict:
        return self._with_retry(lambda: self._get(
            f"/api/v1/safes/{safe_address}/multisig-transactions/", {"limit": limit}, what="transactions"))

    def fetch_safe_version(self, safe_address: str) -> str:
        data = self._with_retry(lambda: self._get(f"/api/v1/safes/{safe_address}/", what="Safe version"))
        return (data or {}).get("version") or "0.0.0"
