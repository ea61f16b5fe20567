# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Wallet balance ledger.

Balances change only through atomic ``$inc`` deltas, so concurrent
donations never lose updates. Inside a store transaction both sides of a
transfer commit together; without one, a failed credit is compensated by
re-crediting the donor.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from pymongo.client_session import ClientSession
from opentelemetry import trace

from middleware.error_handler import InvariantViolationException, NotFoundException
from models.entities import UserAccount

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    """Balances after a completed transfer."""
    donor: UserAccount
    recipient: UserAccount
    amount: float


class WalletLedger:
    """Applies wallet balance deltas through the entity store."""

    def __init__(self, store, allow_negative: Optional[bool] = None):
        """
        Initialize the ledger.

        Args:
            store: EntityStore (or compatible) used for balance updates
            allow_negative: Whether debits may take a balance below zero;
                defaults to ALLOW_NEGATIVE_WALLET_BALANCE (true)
        """
        self.store = store
        if allow_negative is None:
            allow_negative = os.getenv('ALLOW_NEGATIVE_WALLET_BALANCE', 'true').lower() == 'true'
        self.allow_negative = allow_negative

    def get_balance(self, user_id: str) -> float:
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundException(f"User {user_id} not found")
        return user.wallet_balance

    def apply_delta(self, user_id: str, delta: float,
                    session: Optional[ClientSession] = None) -> UserAccount:
        """
        Add a signed delta to a wallet balance.

        Raises:
            NotFoundException: If the user does not exist
            InvariantViolationException: If a debit would take the balance
                below zero while negative balances are disallowed
        """
        with tracer.start_as_current_span("ledger.apply_delta") as span:
            span.set_attributes({"user.id": user_id, "ledger.delta": delta})

            minimum = None
            if delta < 0 and not self.allow_negative:
                minimum = -delta

            user = self.store.adjust_wallet_balance(user_id, delta, minimum=minimum, session=session)
            if user is None:
                if self.store.get_user(user_id, session=session) is None:
                    raise NotFoundException(f"User {user_id} not found")
                span.set_attribute("ledger.result", "insufficient_balance")
                raise InvariantViolationException("Insufficient wallet balance for this donation")

            span.set_attribute("ledger.result", "applied")
            logger.info(
                "Wallet balance adjusted",
                extra={"user_id": user_id, "delta": delta, "balance": user.wallet_balance}
            )
            return user

    def transfer(self, donor_id: str, recipient_id: str, amount: float,
                 session: Optional[ClientSession] = None) -> TransferResult:
        """
        Debit the donor and credit the recipient.

        Args:
            donor_id: Paying user
            recipient_id: Receiving user
            amount: Positive amount
            session: Transaction session; when None the debit is compensated
                if the credit fails

        Returns:
            TransferResult with both updated accounts
        """
        if amount <= 0:
            raise InvariantViolationException("Transfer amount must be positive")

        with tracer.start_as_current_span("ledger.transfer") as span:
            span.set_attributes({
                "ledger.donor_id": donor_id,
                "ledger.recipient_id": recipient_id,
                "ledger.amount": amount,
                "ledger.transactional": session is not None
            })

            donor = self.apply_delta(donor_id, -amount, session=session)
            try:
                recipient = self.apply_delta(recipient_id, amount, session=session)
            except Exception:
                if session is None:
                    self.compensate(donor_id, amount)
                raise

            return TransferResult(donor=donor, recipient=recipient, amount=amount)

    def reverse(self, result: TransferResult) -> None:
        """Undo a transfer made outside a transaction."""
        self.compensate(result.recipient.id, -result.amount)
        self.compensate(result.donor.id, result.amount)

    def compensate(self, user_id: str, delta: float) -> None:
        """Best-effort corrective delta; failures are logged for manual reconciliation."""
        try:
            self.store.adjust_wallet_balance(user_id, delta)
            logger.warning("Wallet compensation applied", extra={"user_id": user_id, "delta": delta})
        except Exception as e:
            logger.error(
                f"Wallet compensation failed: {e}",
                extra={"user_id": user_id, "delta": delta},
                exc_info=True
            )
