"""JSON-RPC client for a Substrate node.

Nodes serve the same JSON-RPC methods over HTTP and WebSocket on the same
port, so ``ws://`` / ``wss://`` endpoints are mapped to ``http://`` /
``https://``. Without a subscription channel, block inclusion is detected by
polling new blocks for the submitted extrinsic.
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any

import httpx

from attendance.core.errors import InclusionError, RPCError

logger = logging.getLogger(__name__)


def http_url(url: str) -> str:
    """Map a WebSocket RPC endpoint to its HTTP equivalent."""
    if url.startswith("wss://"):
        return "https://" + url[len("wss://"):]
    if url.startswith("ws://"):
        return "http://" + url[len("ws://"):]
    return url


class SubstrateRPC:
    """Blocking JSON-RPC client; safe to share between threads."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = http_url(url)
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    # ── Context manager ──────────────────────────────────────────────

    def __enter__(self) -> SubstrateRPC:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    # ── JSON-RPC primitive ───────────────────────────────────────────

    def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Call ``method`` and return its ``result``.

        Raises:
            RPCError: transport failure, malformed response, or an error
                object from the node (``rpc_code`` is set only in that case).
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            resp = self._client.post(self.url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as exc:
            raise RPCError(f"{method} failed: {exc}") from exc
        except ValueError as exc:
            raise RPCError(f"{method} returned invalid JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise RPCError(f"{method} returned an unexpected response")
        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RPCError(f"{method}: {error.get('message', error)}", rpc_code=error.get("code", -1))
            raise RPCError(f"{method}: {error}", rpc_code=-1)
        return body.get("result")

    # ── Chain queries ────────────────────────────────────────────────

    def chain_name(self) -> str:
        """Return the chain name, or "Unknown" if the node will not say.

        Raises:
            RPCError: the node could not be reached at all.
        """
        for method in ("system_chain", "system_name"):
            try:
                name = self.request(method)
            except RPCError as exc:
                if exc.rpc_code is None:
                    raise
                continue
            if name:
                return str(name)
        return "Unknown"

    def block_hash(self, number: int | None = None) -> str:
        result = self.request("chain_getBlockHash", [] if number is None else [number])
        if not isinstance(result, str):
            raise RPCError(f"no block hash for block {number}")
        return result

    def header(self, block_hash: str | None = None) -> dict[str, Any]:
        result = self.request("chain_getHeader", [] if block_hash is None else [block_hash])
        if not isinstance(result, dict):
            raise RPCError("chain_getHeader returned no header")
        return result

    def block(self, block_hash: str) -> dict[str, Any] | None:
        result = self.request("chain_getBlock", [block_hash])
        if not isinstance(result, dict):
            return None
        return result.get("block")

    def runtime_version(self) -> dict[str, Any]:
        result = self.request("state_getRuntimeVersion")
        if not isinstance(result, dict):
            raise RPCError("state_getRuntimeVersion returned no runtime version")
        return result

    def account_next_index(self, address: str) -> int:
        return int(self.request("system_accountNextIndex", [address]))

    def state_call(self, runtime_api: str, data: bytes) -> str:
        return self.request("state_call", [runtime_api, "0x" + data.hex()])

    # ── Extrinsics ───────────────────────────────────────────────────

    def submit_extrinsic(self, extrinsic: bytes) -> str:
        """Submit a signed extrinsic and return its hash."""
        return self.request("author_submitExtrinsic", ["0x" + extrinsic.hex()])

    def pending_extrinsics(self) -> list[str]:
        return [x.lower() for x in self.request("author_pendingExtrinsics") or []]

    def best_block_number(self) -> int:
        return int(self.header()["number"], 16)

    def wait_for_inclusion(
        self,
        extrinsic: bytes,
        since_block: int,
        timeout: float,
        poll_interval: float,
    ) -> str:
        """Poll until ``extrinsic`` appears in a block after ``since_block``.

        Returns the hash of the including block.

        Raises:
            InclusionError: the extrinsic left the pool without being
                included (dropped, invalid, or usurped), or ``timeout``
                seconds passed.
        """
        needle = "0x" + extrinsic.hex()
        checked = since_block
        deadline = time.monotonic() + timeout

        while True:
            # Read the pool before scanning blocks: once an extrinsic leaves
            # the pool by inclusion, its block is already importable.
            pending = needle in self.pending_extrinsics()

            found, checked = self._scan_new_blocks(needle, checked)
            if found:
                logger.info("Extrinsic included in block %s", found)
                return found
            if not pending:
                raise InclusionError("extrinsic dropped from the transaction pool before inclusion")
            if time.monotonic() >= deadline:
                raise InclusionError(f"extrinsic not included within {timeout:.0f}s")
            time.sleep(poll_interval)

    def _scan_new_blocks(self, needle: str, checked: int) -> tuple[str | None, int]:
        """Walk back from the best block to ``checked``, looking for ``needle``."""
        block_hash = self.block_hash()
        head_number: int | None = None

        while True:
            block = self.block(block_hash)
            if block is None:
                break
            header = block.get("header", {})
            number = int(header.get("number", "0x0"), 16)
            if head_number is None:
                head_number = number
            if number <= checked:
                break
            if needle in (x.lower() for x in block.get("extrinsics", [])):
                return block_hash, max(checked, head_number)
            block_hash = header.get("parentHash", "")
            if not block_hash:
                break

        return None, max(checked, head_number if head_number is not None else checked)
