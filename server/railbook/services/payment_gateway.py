"""Payment gateway interface and the simulated implementation."""

import abc
import asyncio
import logging
import secrets
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from ..core.exceptions import PaymentDeclinedError
from ..schemas.booking import PaymentDetails, PaymentMethod, PaymentReceipt
from ..schemas.common import Money

logger = logging.getLogger(__name__)

DEFAULT_DECLINED_CARDS = ("4000000000000002",)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PaymentGateway(abc.ABC):
    """Charges a customer for a booking."""

    @abc.abstractmethod
    async def charge(self, payment: PaymentDetails, amount: Money) -> PaymentReceipt:
        """
        Charge ``amount`` using ``payment``.

        Raises:
            PaymentDeclinedError: If the provider refuses the charge
        """


class SimulatedPaymentGateway(PaymentGateway):
    """
    Stand-in for a real provider.

    Mobile and PayPal payments always succeed. Card payments are declined
    when the number is on the declined list or the card has expired.
    """

    def __init__(
        self,
        declined_card_numbers: Iterable[str] = DEFAULT_DECLINED_CARDS,
        latency_seconds: float = 0.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.declined_card_numbers = frozenset(declined_card_numbers)
        self.latency_seconds = latency_seconds
        self._clock = clock

    @staticmethod
    def _transaction_id() -> str:
        return "TXN" + "".join(secrets.choice("0123456789") for _ in range(10))

    def _is_expired(self, expiration_date: str) -> bool:
        month, year = expiration_date.split("/")
        now = self._clock()
        expiry = (2000 + int(year), int(month))
        return expiry < (now.year, now.month)

    async def charge(self, payment: PaymentDetails, amount: Money) -> PaymentReceipt:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

        if payment.method == PaymentMethod.CARD:
            if payment.card_number in self.declined_card_numbers:
                logger.info(
                    "Card payment declined",
                    extra={"reason": "card_declined", "card_last4": payment.card_number[-4:]}
                )
                raise PaymentDeclinedError(reason="card_declined")
            if self._is_expired(payment.expiration_date):
                logger.info(
                    "Card payment declined",
                    extra={"reason": "card_expired", "card_last4": payment.card_number[-4:]}
                )
                raise PaymentDeclinedError(reason="card_expired")

        receipt = PaymentReceipt(
            transaction_id=self._transaction_id(),
            method=payment.method,
            amount=amount,
            processed_at=self._clock(),
        )
        logger.info(
            "Payment processed",
            extra={
                "transaction_id": receipt.transaction_id,
                "method": payment.method.value,
                "amount": amount.amount,
                "currency": amount.currency,
            }
        )
        return receipt
