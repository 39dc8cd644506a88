"""Async client for the Agglayer routing API (ARC)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.errors import RouterError
from .base import RouterProvider


logger = logging.getLogger(__name__)


def _unwrap_list(payload: Any, *keys: str) -> List[Dict[str, Any]]:
    """Accept either a bare list or an object wrapping it under one of ``keys``."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def _unwrap_object(payload: Any, *keys: str) -> Dict[str, Any]:
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, dict):
                return value
        return payload
    raise RouterError(f"Unexpected router response: {payload!r}")


class ArcApiProvider(RouterProvider):
    """Thin wrapper around the routing API endpoints used by the harness."""

    name = "arc"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        configured = base_url or settings.arc_api_base_url
        self.base_url = configured.rstrip("/")
        self.timeout_s = timeout_s or settings.arc_api_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": "AgglayerBridgeHarness/1.0",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        cleaned = {k: v for k, v in (params or {}).items() if v is not None} or None

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout_s, transport=self._transport
            ) as client:
                response = await client.request(method, path, json=json, params=cleaned, headers=self._headers())
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            raise RouterError(
                f"{method} {path} returned {exc.response.status_code}: {exc.response.text[:200]}",
                status_code=exc.response.status_code,
                path=path,
            ) from exc
        except httpx.RequestError as exc:
            raise RouterError(f"{method} {path} failed: {exc}", path=path) from exc
        except ValueError as exc:
            raise RouterError(f"{method} {path} returned invalid JSON", path=path) from exc

    async def get_all_chains(self) -> List[Dict[str, Any]]:
        payload = await self._request("GET", "/chains")
        return _unwrap_list(payload, "chains", "data")

    async def get_token_mappings(self, token_address: str) -> List[Dict[str, Any]]:
        payload = await self._request("GET", "/token-mappings", params={"tokenAddress": token_address})
        return _unwrap_list(payload, "tokenMappings", "mappings", "data")

    async def get_routes(
        self,
        *,
        from_chain_id: int,
        to_chain_id: int,
        from_token_address: str,
        to_token_address: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> List[Dict[str, Any]]:
        """Request routes. Amount is in base units; slippage is a percentage."""

        params = {
            "fromChainId": from_chain_id,
            "toChainId": to_chain_id,
            "fromTokenAddress": from_token_address,
            "toTokenAddress": to_token_address,
            "amount": str(amount),
            "fromAddress": from_address,
            "slippage": slippage,
        }
        payload = await self._request("GET", "/routes", params=params)
        routes = _unwrap_list(payload, "routes", "data")
        logger.debug("Router returned %s route(s) for %s -> %s", len(routes), from_chain_id, to_chain_id)
        return routes

    async def get_unsigned_transaction(self, route: Dict[str, Any]) -> Dict[str, Any]:
        payload = await self._request("POST", "/routes/build-transaction", json=route)
        return _unwrap_object(payload, "transaction", "transactionRequest")

    async def get_claim_unsigned_transaction(self, source_network_id: int, deposit_count: int) -> Dict[str, Any]:
        payload = await self._request(
            "GET",
            "/routes/build-transaction-for-claim",
            params={"sourceNetworkId": source_network_id, "depositCount": deposit_count},
        )
        return _unwrap_object(payload, "transaction", "transactionRequest")

    async def get_transactions(
        self,
        *,
        address: Optional[str] = None,
        limit: int = 50,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = await self._request(
            "GET", "/transactions", params={"address": address, "limit": limit, "sort": sort}
        )
        return {"transactions": _unwrap_list(payload, "transactions", "data")}
