# SPDX-License-Identifier: Apache-2.0

"""
Donation shape rules.

A donation carries either a resource gift (type + quantity) or a monetary
gift (amount + currency), never both and never neither.
"""

from dataclasses import dataclass
from typing import Optional, Union

from models.entities import ResourceGift, MonetaryGift
from models.requests import CreateDonationRequest

DEFAULT_CURRENCY = "USDC"


@dataclass
class GiftResult:
    """Result of turning a donation payload into a gift."""
    gift: Optional[Union[ResourceGift, MonetaryGift]] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.gift is not None


def build_donation_gift(payload: CreateDonationRequest) -> GiftResult:
    """
    Decide which gift a donation payload describes.

    The two groups are not completed the same way. A resource group needs
    both resource_type and resource_quantity. A monetary group needs only an
    amount: a missing currency defaults to USDC, the currency wallet balances
    are kept in, while a currency without an amount is rejected.

    Args:
        payload: Validated donation request

    Returns:
        GiftResult with the gift, or an error describing the broken rule
    """
    has_resource = payload.resource_type is not None or payload.resource_quantity is not None
    has_money = payload.amount is not None or payload.currency is not None

    if has_resource and has_money:
        return GiftResult(error="A donation carries either resources or money, not both")

    if not has_resource and not has_money:
        return GiftResult(error="A donation must carry either resources or money")

    if has_resource:
        if payload.resource_type is None or payload.resource_quantity is None:
            return GiftResult(error="resource_type and resource_quantity must be provided together")
        return GiftResult(gift=ResourceGift(
            resource_type=payload.resource_type,
            resource_quantity=payload.resource_quantity
        ))

    if payload.amount is None:
        return GiftResult(error="A monetary donation requires an amount")

    return GiftResult(gift=MonetaryGift(
        amount=payload.amount,
        currency=payload.currency or DEFAULT_CURRENCY
    ))
