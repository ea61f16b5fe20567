# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Wallet endpoints.

The wallet balance is the application ledger value moved by monetary
donations. Chain balances are read from the Solana RPC node for display
and are never used by the ledger.
"""

from flask import jsonify, current_app, request
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from middleware.auth import require_jwt, current_user_context
from middleware.error_handler import ServiceUnavailableException, ValidationException
from middleware.validation import get_json_body, parse_model
from models.requests import SubmitChainTransactionRequest
from services.chain import ChainClientError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

wallet_tag = Tag(name="Wallet", description="Wallet balance and chain relay")
wallet_bp = APIBlueprint(
    'wallet',
    __name__,
    url_prefix='/api/wallet',
    abp_tags=[wallet_tag]
)

WALLET_LINKS = {
    "self": {"href": "/api/wallet"},
    "chain_balance": {"href": "/api/wallet/chain{?address}", "templated": True},
    "donations": {"href": "/api/donations"}
}


def _chain_client():
    if current_app.chain_client is None:
        raise ServiceUnavailableException("Chain RPC client is not configured")
    return current_app.chain_client


@wallet_bp.get('')
@require_jwt
def get_wallet():
    """Return the caller's wallet balance."""
    user_context = current_user_context()
    balance = current_app.ledger.get_balance(user_context.user_id)

    return jsonify({
        "userId": user_context.user_id,
        "walletBalance": balance,
        "currency": "USDC",
        "_links": WALLET_LINKS
    }), 200


@wallet_bp.get('/chain')
@require_jwt
def get_chain_balances():
    """SOL and USDC balances held on chain by ?address=<public key>."""
    address = (request.args.get('address') or '').strip()
    if not address:
        raise ValidationException(
            "Missing wallet address",
            [{"field": "address", "message": "Query parameter is required", "type": "missing", "input": None}]
        )

    with tracer.start_as_current_span("wallet.chain_balances") as span:
        span.set_attribute("wallet.address", address)
        try:
            balances = _chain_client().get_wallet_balances(address)
        except ChainClientError as e:
            raise ServiceUnavailableException(f"Chain RPC request failed: {e.message}")

    balances["_links"] = {"self": {"href": f"/api/wallet/chain?address={address}"}, "wallet": {"href": "/api/wallet"}}
    return jsonify(balances), 200


@wallet_bp.post('/chain/transactions')
@require_jwt
def submit_chain_transaction():
    """Relay a transaction the caller already signed; returns its signature."""
    user_context = current_user_context()
    data = parse_model(SubmitChainTransactionRequest, get_json_body(), "transaction")

    try:
        signature = _chain_client().submit_transaction(data.signed_transaction)
    except ChainClientError as e:
        raise ServiceUnavailableException(f"Chain RPC request failed: {e.message}")

    logger.info("Chain transaction relayed", extra={"user_id": user_context.user_id, "signature": signature})
    return jsonify({
        "signature": signature,
        "_links": {"wallet": {"href": "/api/wallet"}}
    }), 202
