# pump_bundler/bundle/relay.py
"""
Async JSON-RPC client for the Jito block engine.

The client makes exactly one HTTP request per call. Retrying is the retry
coordinator's job; here failures are only classified so it can decide.
"""
import itertools
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from pump_bundler.bundle.retry import classify_rejection
from pump_bundler.core.exceptions import RelayError, TransientRelayError
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BLOCK_ENGINE_URL = "https://mainnet.block-engine.jito.wtf/api/v1"
DEFAULT_RELAY_TIMEOUT = 10.0

# Statuses reported by getInflightBundleStatuses
STATUS_INVALID = "Invalid"
STATUS_PENDING = "Pending"
STATUS_FAILED = "Failed"
STATUS_LANDED = "Landed"


@dataclass(frozen=True)
class InflightStatus:
    bundle_id: str
    status: str
    landed_slot: Optional[int] = None


@dataclass(frozen=True)
class LandedBundle:
    bundle_id: str
    slot: int
    transaction_ids: List[str]
    confirmation_status: Optional[str] = None
    err: Optional[Any] = None


class RelayClient:
    def __init__(
            self,
            base_url: str = DEFAULT_BLOCK_ENGINE_URL,
            timeout: float = DEFAULT_RELAY_TIMEOUT,
            uuid: Optional[str] = None,
            http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.uuid = uuid
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._request_ids = itertools.count(1)
        logger.info(f"RelayClient initialized: {self.base_url}")

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()
            logger.info("RelayClient connection closed.")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.uuid:
            headers["x-jito-auth"] = self.uuid
        return headers

    async def _rpc_call(self, method: str, params: Optional[list] = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._request_ids), "method": method, "params": params or []}
        url = f"{self.base_url}/bundles"
        try:
            response = await self._http.post(url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TransientRelayError(f"{method} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientRelayError(f"{method} transport error: {e}") from e

        if response.status_code == 429:
            logger.warning(f"Relay rate limit (429) on {method}")
            raise TransientRelayError(f"{method} rate limited (HTTP 429)")
        if response.status_code >= 500:
            raise TransientRelayError(f"{method} failed with HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise RelayError(f"{method} returned non-JSON body (HTTP {response.status_code})") from e

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            logger.warning(f"Relay {method} error: {message}")
            if classify_rejection(message):
                raise TransientRelayError(message)
            raise RelayError(message)
        if response.status_code != 200:
            raise RelayError(f"{method} failed with HTTP {response.status_code}")
        return body.get("result")

    async def send_bundle(self, encoded_transactions: Sequence[str]) -> str:
        """Submits base64 transactions as one bundle; returns the relay's bundle id."""
        if not encoded_transactions:
            raise ValueError("Cannot send an empty bundle")
        result = await self._rpc_call("sendBundle", [list(encoded_transactions), {"encoding": "base64"}])
        if not isinstance(result, str) or not result:
            raise RelayError(f"sendBundle returned no bundle id: {result!r}")
        logger.info(f"Bundle submitted: {result}")
        return result

    async def get_inflight_bundle_statuses(self, bundle_ids: Sequence[str]) -> List[InflightStatus]:
        result = await self._rpc_call("getInflightBundleStatuses", [list(bundle_ids)])
        statuses = []
        for item in (result or {}).get("value", []) or []:
            if not item:
                continue
            statuses.append(
                InflightStatus(
                    bundle_id=item.get("bundle_id"),
                    status=item.get("status", STATUS_PENDING),
                    landed_slot=item.get("landed_slot"),
                )
            )
        return statuses

    async def get_bundle_statuses(self, bundle_ids: Sequence[str]) -> List[LandedBundle]:
        result = await self._rpc_call("getBundleStatuses", [list(bundle_ids)])
        bundles = []
        for item in (result or {}).get("value", []) or []:
            if not item:
                continue
            bundles.append(
                LandedBundle(
                    bundle_id=item.get("bundle_id"),
                    slot=item.get("slot"),
                    transaction_ids=list(item.get("transactions") or []),
                    confirmation_status=item.get("confirmation_status"),
                    err=(item.get("err") or {}).get("Err"),
                )
            )
        return bundles

    async def get_tip_accounts(self) -> List[str]:
        result = await self._rpc_call("getTipAccounts")
        if not isinstance(result, list) or not result:
            raise RelayError("getTipAccounts returned no accounts")
        return result
