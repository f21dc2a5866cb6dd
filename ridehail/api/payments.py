"""
Payment service.

The backend has no payment contract yet, so ``MockPaymentService`` keeps
payment methods, transactions and the wallet balance in memory.  It
honours the same rules a real service would: non-positive amounts are
rejected and withdrawals beyond the balance raise
``InsufficientFundsError``.
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from ridehail.domain.entities import PaymentMethod, Transaction, WalletBalance
from ridehail.domain.enums import PaymentMethodType, TransactionType
from ridehail.domain.errors import (
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class PaymentService(ABC):
    @abstractmethod
    async def get_payment_methods(self) -> list[PaymentMethod]: ...

    @abstractmethod
    async def get_wallet_balance(self) -> WalletBalance: ...

    @abstractmethod
    async def top_up_wallet(
        self, amount: int, payment_method_id: Optional[str] = None
    ) -> WalletBalance: ...

    @abstractmethod
    async def withdraw_from_wallet(
        self, amount: int, payment_method_id: Optional[str] = None
    ) -> WalletBalance: ...


def default_payment_methods() -> list[PaymentMethod]:
    return [
        PaymentMethod(
            "card1",
            PaymentMethodType.CARD,
            is_default=True,
            display={"brand": "Visa", "last4": "4242", "expiry": "12/2025"},
        ),
        PaymentMethod(
            "card2",
            PaymentMethodType.CARD,
            display={"brand": "Mastercard", "last4": "5678", "expiry": "09/2024"},
        ),
        PaymentMethod(
            "mobile1",
            PaymentMethodType.MOBILE_MONEY,
            display={"provider": "MTN", "phoneNumber": "+250788123456"},
        ),
        PaymentMethod("wallet", PaymentMethodType.WALLET, display={"label": "Wallet"}),
    ]


class MockPaymentService(PaymentService):
    def __init__(
        self,
        balance: int = 15_000,
        currency: str = "RWF",
        methods: Optional[list[PaymentMethod]] = None,
        latency_seconds: float = 0.0,
    ):
        self.currency = currency
        self.latency_seconds = latency_seconds
        self._balance = balance
        self._methods = list(methods if methods is not None else default_payment_methods())
        self._transactions: list[Transaction] = []

    async def _delay(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

    def _find(self, payment_method_id: str) -> PaymentMethod:
        for method in self._methods:
            if method.id == payment_method_id:
                return method
        raise NotFoundError(f"Payment method {payment_method_id} not found", 404)

    def _record(
        self,
        amount: int,
        tx_type: TransactionType,
        description: str,
        payment_method_id: Optional[str],
    ) -> Transaction:
        tx = Transaction(
            id=f"{tx_type.value.lower()}-{uuid.uuid4().hex[:8]}",
            amount=amount,
            type=tx_type,
            currency=self.currency,
            date=datetime.now(timezone.utc),
            description=description,
            payment_method_id=payment_method_id,
        )
        self._transactions.insert(0, tx)
        return tx

    # ── Payment methods ───────────────────────────────────────────

    async def get_payment_methods(self) -> list[PaymentMethod]:
        await self._delay()
        return list(self._methods)

    async def add_payment_method(
        self, method_type: PaymentMethodType, display: Mapping[str, Any]
    ) -> PaymentMethod:
        await self._delay()
        method = PaymentMethod(
            id=f"new-{uuid.uuid4().hex[:8]}", type=method_type, display=dict(display)
        )
        self._methods.append(method)
        return method

    async def remove_payment_method(self, payment_method_id: str) -> None:
        await self._delay()
        self._methods.remove(self._find(payment_method_id))

    async def set_default_payment_method(self, payment_method_id: str) -> None:
        await self._delay()
        self._find(payment_method_id)
        self._methods = [
            replace(m, is_default=m.id == payment_method_id) for m in self._methods
        ]

    # ── Transactions ──────────────────────────────────────────────

    async def get_transactions(self, page: int = 0, size: int = 10) -> dict[str, Any]:
        await self._delay()
        start = page * size
        return {
            "content": self._transactions[start : start + size],
            "total_elements": len(self._transactions),
            "total_pages": math.ceil(len(self._transactions) / size) if size else 0,
            "size": size,
            "number": page,
        }

    # ── Wallet ────────────────────────────────────────────────────

    async def get_wallet_balance(self) -> WalletBalance:
        await self._delay()
        return WalletBalance(self._balance, self.currency)

    async def top_up_wallet(
        self, amount: int, payment_method_id: Optional[str] = None
    ) -> WalletBalance:
        await self._delay()
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0", ("amount",))
        if payment_method_id is not None:
            self._find(payment_method_id)
        self._balance += amount
        self._record(amount, TransactionType.TOP_UP, "Wallet top-up", payment_method_id)
        logger.info("Wallet topped up by %d (balance=%d)", amount, self._balance)
        return WalletBalance(self._balance, self.currency)

    async def withdraw_from_wallet(
        self, amount: int, payment_method_id: Optional[str] = None
    ) -> WalletBalance:
        await self._delay()
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0", ("amount",))
        if amount > self._balance:
            raise InsufficientFundsError(amount, self._balance)
        self._balance -= amount
        self._record(
            amount, TransactionType.WITHDRAWAL, "Wallet withdrawal", payment_method_id
        )
        logger.info("Wallet debited by %d (balance=%d)", amount, self._balance)
        return WalletBalance(self._balance, self.currency)
