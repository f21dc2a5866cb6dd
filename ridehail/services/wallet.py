"""
Wallet adapter.

Keeps the locally displayed balance in step with the payment service.
The local value is only ever replaced by a balance the service reported
back, so a failed top-up or debit leaves it untouched.
"""

from __future__ import annotations

import logging
from typing import Optional

from ridehail.api.payments import PaymentService
from ridehail.domain.entities import PaymentMethod, WalletBalance
from ridehail.domain.errors import ValidationError

logger = logging.getLogger(__name__)


class WalletAdapter:
    def __init__(self, payments: PaymentService):
        self.payments = payments
        self.balance: Optional[WalletBalance] = None

    async def get_balance(self) -> WalletBalance:
        self.balance = await self.payments.get_wallet_balance()
        return self.balance

    async def debit(self, amount: int) -> WalletBalance:
        """Withdraw *amount*; raises ``InsufficientFundsError`` beyond the balance."""
        if amount <= 0:
            raise ValidationError("Debit amount must be greater than 0", ("amount",))
        self.balance = await self.payments.withdraw_from_wallet(amount)
        return self.balance

    async def credit(
        self, amount: int, payment_method_id: Optional[str] = None
    ) -> WalletBalance:
        """Top up from a card or mobile-money funding source."""
        if amount <= 0:
            raise ValidationError("Top-up amount must be greater than 0", ("amount",))
        self.balance = await self.payments.top_up_wallet(amount, payment_method_id)
        logger.info("Wallet balance now %d %s", self.balance.amount, self.balance.currency)
        return self.balance

    async def payment_methods(self) -> list[PaymentMethod]:
        return await self.payments.get_payment_methods()

    async def find_payment_method(self, payment_method_id: str) -> Optional[PaymentMethod]:
        for method in await self.payment_methods():
            if method.id == payment_method_id:
                return method
        return None
