"""Hive account reader over JSON-RPC.

Calls ``condenser_api.get_accounts`` on the configured nodes in order,
failing over to the next node on transport errors, timeouts, 5xx responses
and malformed bodies. An empty result is the chain's not-found marker.
"""

from __future__ import annotations

from typing import Any, Sequence

import httpx
from structlog import get_logger

from src.domain.errors.userbase import LedgerAccountNotFoundError, LedgerError

logger = get_logger(__name__)

GET_ACCOUNTS_METHOD = "condenser_api.get_accounts"


class HiveAccountReader:
    """LedgerReaderProtocol implementation backed by Hive API nodes."""

    def __init__(
        self,
        nodes: Sequence[str],
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the reader.

        Args:
            nodes: RPC node URLs, tried in order.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._nodes = [node.rstrip("/") for node in nodes]
        self._timeout = timeout_seconds
        self._transport = transport

    async def get_account(self, name: str) -> dict[str, Any]:
        """Fetch one account.

        Raises:
            LedgerAccountNotFoundError: The node returned no account.
            LedgerError: Every node failed, or a node rejected the request.
        """
        payload = {
            "jsonrpc": "2.0",
            "method": GET_ACCOUNTS_METHOD,
            "params": [[name]],
            "id": 1,
        }
        last_error: LedgerError | None = None

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            for node in self._nodes:
                try:
                    response = await client.post(node, json=payload)
                except httpx.TimeoutException:
                    last_error = LedgerError(
                        f"Request timeout after {self._timeout}s", code="TIMEOUT"
                    )
                    logger.warning("hive_node_timeout", node=node)
                    continue
                except httpx.RequestError as exc:
                    last_error = LedgerError(f"Request failed: {exc}")
                    logger.warning("hive_node_unreachable", node=node, error=str(exc))
                    continue

                if response.status_code >= 500:
                    last_error = LedgerError(
                        f"Node error: {response.status_code}",
                        status=response.status_code,
                    )
                    logger.warning(
                        "hive_node_error", node=node, status=response.status_code
                    )
                    continue
                if response.status_code >= 400:
                    raise LedgerError(
                        f"Node rejected request: {response.status_code}",
                        status=response.status_code,
                    )

                try:
                    body = response.json()
                except ValueError:
                    last_error = LedgerError("Malformed node response")
                    logger.warning("hive_node_malformed_response", node=node)
                    continue

                error = body.get("error") if isinstance(body, dict) else None
                if error:
                    message = error.get("message") if isinstance(error, dict) else str(error)
                    code = error.get("code") if isinstance(error, dict) else None
                    raise LedgerError(
                        message or "RPC error",
                        code=str(code) if code is not None else None,
                    )

                result = body.get("result") if isinstance(body, dict) else None
                if not isinstance(result, list):
                    last_error = LedgerError("Malformed node response")
                    logger.warning("hive_node_malformed_response", node=node)
                    continue
                if not result:
                    raise LedgerAccountNotFoundError(name)
                return result[0]

        raise last_error or LedgerError("No Hive API nodes configured")
