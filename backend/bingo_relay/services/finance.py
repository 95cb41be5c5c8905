"""Payment and withdrawal gateways.

The relay never moves money itself. It forwards requests to a
``PaymentGateway`` / ``WithdrawalGateway``; the simulated implementations
below stand in for a real provider and succeed at a fixed rate.
"""
import random
import re
import time
from typing import Any, Dict, Optional, Protocol

from ..models import isoformat

VALID_PAYMENT_AMOUNTS = (25, 50, 100, 200, 500, 1000, 2000, 5000)
MIN_WITHDRAWAL = 25
MAX_WITHDRAWAL = 50000
SERVICE_FEE_RATE = 0.03

_PHONE_RE = re.compile(r'^09\d{8}$')
_ACCOUNT_RE = re.compile(r'^\d{10,15}$')


class PaymentGateway(Protocol):
    def verify(self, phone: str, amount, transaction_id: Optional[str] = None) -> Dict[str, Any]:
        ...


class WithdrawalGateway(Protocol):
    def validate(self, account: str, amount) -> Optional[str]:
        """Return an error message for bad input, None when the request may proceed."""
        ...

    def withdraw(self, account: str, amount, player_id: Optional[str] = None) -> Dict[str, Any]:
        ...


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def mask_account(account: str) -> str:
    return account[-4:].rjust(len(account), '*')


class SimulatedPaymentGateway:
    def __init__(self, success_rate: float = 0.95, rng: Optional[random.Random] = None,
                 clock=time.time) -> None:
        self.success_rate = success_rate
        self.rng = rng or random.Random()
        self._clock = clock

    def verify(self, phone, amount, transaction_id=None):
        now = self._clock()
        valid = (isinstance(phone, str) and bool(_PHONE_RE.match(phone))
                 and _is_number(amount) and amount in VALID_PAYMENT_AMOUNTS)
        if valid and self.rng.random() < self.success_rate:
            return {
                'success': True,
                'transactionId': transaction_id or f"PAY-{int(now * 1000)}",
                'verifiedAt': isoformat(now),
                'amount': amount,
                'serviceFee': amount * SERVICE_FEE_RATE,
                'netAmount': amount * (1 - SERVICE_FEE_RATE),
            }
        return {
            'success': False,
            'error': ('Payment verification failed. Please try again.' if valid
                      else 'Invalid payment details.'),
            'timestamp': isoformat(now),
        }


class SimulatedWithdrawalGateway:
    def __init__(self, success_rate: float = 0.9, rng: Optional[random.Random] = None,
                 clock=time.time) -> None:
        self.success_rate = success_rate
        self.rng = rng or random.Random()
        self._clock = clock

    def validate(self, account, amount):
        if not isinstance(account, str) or not _ACCOUNT_RE.match(account):
            return 'Invalid account number. Must be 10-15 digits.'
        if not _is_number(amount) or not MIN_WITHDRAWAL <= amount <= MAX_WITHDRAWAL:
            return 'Amount must be between 25 and 50,000 birr.'
        return None

    def withdraw(self, account, amount, player_id=None):
        now = self._clock()
        if self.rng.random() >= self.success_rate:
            return {
                'success': False,
                'error': 'Withdrawal processing failed. Please try again in 5 minutes.',
                'timestamp': isoformat(now),
            }
        fee = amount * SERVICE_FEE_RATE
        return {
            'success': True,
            'transactionId': f"WDR-{int(now * 1000)}",
            'processedAt': isoformat(now),
            'amount': amount,
            'serviceFee': fee,
            'netAmount': amount - fee,
            'account': mask_account(account),
        }
