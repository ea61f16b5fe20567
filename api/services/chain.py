# SPDX-License-Identifier: Apache-2.0

"""
Solana JSON-RPC client.

Reads wallet balances and relays transactions that the client already
signed. Results are display data only; wallet balances used by donations
live in the entity store.
"""

import os
import uuid
from typing import Any, Dict, List, Optional

import requests
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.devnet.solana.com"
DEFAULT_USDC_MINT = "Gh9ZwEmdLJ8DscKNTkTqPbNwLNNBjuSzaG9Vp2KGtKJr"
LAMPORTS_PER_SOL = 1_000_000_000


class ChainClientError(Exception):
    """Raised when the RPC node is unreachable or returns an error."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class SolanaRpcClient:
    """Minimal JSON-RPC client for balance lookups and transaction relay."""

    def __init__(self, rpc_url: Optional[str] = None, usdc_mint: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.rpc_url = rpc_url or os.getenv("SOLANA_RPC_URL", DEFAULT_RPC_URL)
        self.usdc_mint = usdc_mint or os.getenv("SOLANA_USDC_MINT", DEFAULT_USDC_MINT)
        self.timeout = timeout or float(os.getenv("SOLANA_RPC_TIMEOUT", "10"))
        self.session = session or requests.Session()

    def _call(self, method: str, params: List[Any]) -> Any:
        with tracer.start_as_current_span("chain.rpc_call") as span:
            span.set_attribute("rpc.method", method)

            payload = {
                "jsonrpc": "2.0",
                "id": uuid.uuid4().hex,
                "method": method,
                "params": params
            }

            try:
                response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                body = response.json()
            except requests.RequestException as e:
                span.record_exception(e)
                logger.error(f"Solana RPC {method} failed: {str(e)}")
                raise ChainClientError(f"Chain RPC unavailable: {str(e)}")
            except ValueError as e:
                logger.error(f"Solana RPC {method} returned invalid JSON")
                raise ChainClientError(f"Chain RPC returned invalid JSON: {str(e)}")

            if body.get("error"):
                error = body["error"]
                span.set_attribute("rpc.error_code", error.get("code", 0))
                logger.warning(
                    "Solana RPC returned an error",
                    extra={"method": method, "error_code": error.get("code"), "error_message": error.get("message")}
                )
                raise ChainClientError(error.get("message", "RPC error"), error.get("code"))

            return body.get("result")

    def get_sol_balance(self, address: str) -> float:
        """SOL balance of an address."""
        result = self._call("getBalance", [address, {"commitment": "confirmed"}])
        return result["value"] / LAMPORTS_PER_SOL

    def get_token_balance(self, owner: str, mint: Optional[str] = None) -> float:
        """
        Token balance held by an owner for a mint, summed over its token accounts.

        Returns 0 when the owner has no token account for the mint.
        """
        result = self._call("getTokenAccountsByOwner", [
            owner,
            {"mint": mint or self.usdc_mint},
            {"encoding": "jsonParsed", "commitment": "confirmed"}
        ])

        total = 0.0
        for account in result.get("value", []):
            token_amount = account["account"]["data"]["parsed"]["info"]["tokenAmount"]
            total += float(token_amount.get("uiAmount") or 0)
        return total

    def get_wallet_balances(self, address: str) -> Dict[str, Any]:
        """SOL and USDC balances for a wallet address."""
        return {
            "address": address,
            "sol": self.get_sol_balance(address),
            "usdc": self.get_token_balance(address),
            "usdcMint": self.usdc_mint
        }

    def submit_transaction(self, signed_transaction: str) -> str:
        """
        Relay an already-signed, base64 encoded transaction.

        Returns:
            Transaction signature
        """
        signature = self._call("sendTransaction", [
            signed_transaction,
            {"encoding": "base64", "preflightCommitment": "confirmed"}
        ])
        logger.info("Transaction relayed to chain", extra={"signature": signature})
        return signature
