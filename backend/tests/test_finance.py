import pytest
from conftest import FixedRandom, make_relay

from bingo_relay.services.finance import (
    SimulatedPaymentGateway,
    SimulatedWithdrawalGateway,
    mask_account,
)


def test_payment_success():
    gateway = SimulatedPaymentGateway(rng=FixedRandom(0.5), clock=lambda: 1.0)
    result = gateway.verify('0912345678', 100, 'TX-1')
    assert result['success'] is True
    assert result['transactionId'] == 'TX-1'
    assert result['serviceFee'] == pytest.approx(3.0)
    assert result['netAmount'] == pytest.approx(97.0)
    assert result['verifiedAt'] == '1970-01-01T00:00:01.000Z'


def test_payment_generates_transaction_id():
    gateway = SimulatedPaymentGateway(rng=FixedRandom(0.0), clock=lambda: 2.5)
    assert gateway.verify('0912345678', 25)['transactionId'] == 'PAY-2500'


@pytest.mark.parametrize('phone,amount', [
    ('0812345678', 100),
    ('091234567', 100),
    ('0912345678', 30),
    (None, 100),
])
def test_payment_rejects_invalid_details(phone, amount):
    gateway = SimulatedPaymentGateway(rng=FixedRandom(0.0))
    result = gateway.verify(phone, amount)
    assert result == {'success': False, 'error': 'Invalid payment details.', 'timestamp': result['timestamp']}


def test_payment_random_failure():
    gateway = SimulatedPaymentGateway(rng=FixedRandom(0.99))
    result = gateway.verify('0912345678', 100)
    assert result['success'] is False
    assert result['error'] == 'Payment verification failed. Please try again.'


def test_withdrawal_validation():
    gateway = SimulatedWithdrawalGateway()
    assert gateway.validate('123', 100) == 'Invalid account number. Must be 10-15 digits.'
    assert gateway.validate('1234567890', 10) == 'Amount must be between 25 and 50,000 birr.'
    assert gateway.validate('1234567890', 60000) == 'Amount must be between 25 and 50,000 birr.'
    assert gateway.validate('1234567890', 'lots') == 'Amount must be between 25 and 50,000 birr.'
    assert gateway.validate('1234567890', 25) is None


def test_withdrawal_success_masks_account():
    gateway = SimulatedWithdrawalGateway(rng=FixedRandom(0.1), clock=lambda: 3.0)
    result = gateway.withdraw('1234567890', 1000)
    assert result['success'] is True
    assert result['transactionId'] == 'WDR-3000'
    assert result['serviceFee'] == pytest.approx(30.0)
    assert result['netAmount'] == pytest.approx(970.0)
    assert result['account'] == '******7890'


def test_withdrawal_random_failure():
    gateway = SimulatedWithdrawalGateway(rng=FixedRandom(0.95))
    result = gateway.withdraw('1234567890', 1000)
    assert result['success'] is False
    assert 'try again in 5 minutes' in result['error']


def test_mask_account():
    assert mask_account('123456789012345') == '***********2345'


def test_router_uses_injected_gateways(transport, clock):
    class ApprovingGateway:
        def __init__(self):
            self.calls = []

        def verify(self, phone, amount, transaction_id=None):
            self.calls.append((phone, amount, transaction_id))
            return {'success': True, 'transactionId': 'FAKE'}

    relay = make_relay(transport, clock)
    relay.payments = ApprovingGateway()
    relay.router.connect('p1')
    ack = relay.router.dispatch('p1', 'verify-payment', {'phone': 'x', 'amount': 7})
    assert ack == {'success': True, 'transactionId': 'FAKE'}
    assert relay.payments.calls == [('x', 7, None)]
