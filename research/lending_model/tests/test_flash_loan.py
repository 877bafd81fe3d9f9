"""Flash loans of the base asset"""
import pytest

from lending_model.src.errors import (
    FlashLoanFailedError,
    FlashLoanRepaymentError,
    LowLiquidityError,
    ProtocolPausedError,
    ReentrancyError,
    ZeroAmountError,
)

from conftest import USDC


class Receiver:
    """Borrows, optionally runs a callback, then repays ``amount + fee - shortfall``"""

    def __init__(self, token, lender_address, succeed=True, shortfall=0, callback=None):
        self.address = "receiver"
        self.token = token
        self.lender_address = lender_address
        self.succeed = succeed
        self.shortfall = shortfall
        self.callback = callback
        self.calls = []

    def execute_operation(self, asset, amount, fee, initiator, params):
        self.calls.append((asset, amount, fee, initiator, params))
        if self.callback is not None:
            self.callback()
        self.token.transfer(self.address, self.lender_address, amount + fee - self.shortfall)
        return self.succeed


@pytest.fixture()
def receiver(funded_protocol, usdc):
    usdc.mint("receiver", 100 * USDC)
    return Receiver(usdc, funded_protocol.address)


def test_flash_loan(funded_protocol, receiver, usdc):
    fee = funded_protocol.flash_loan("bot", receiver, 10_000 * USDC, params={"route": "dex"})

    assert fee == 9 * USDC
    assert receiver.calls == [("USDC", 10_000 * USDC, 9 * USDC, "bot", {"route": "dex"})]
    assert usdc.balance_of("receiver") == 91 * USDC
    assert usdc.balance_of(funded_protocol.address) == 100_009 * USDC
    assert funded_protocol.pool.total_supplied_liquidity == 100_009 * USDC
    assert funded_protocol.pool.tracked_base_balance == 100_009 * USDC
    assert funded_protocol.pool.total_flash_loan_fees == 9 * USDC
    assert funded_protocol.untracked_balance() == 0

def test_fee_rounds_down(funded_protocol, receiver):
    assert funded_protocol.flash_loan("bot", receiver, 1_000) == 0

def test_receiver_reports_failure(funded_protocol, receiver, usdc):
    receiver.succeed = False
    with pytest.raises(FlashLoanFailedError):
        funded_protocol.flash_loan("bot", receiver, 10_000 * USDC)

    assert usdc.balance_of("receiver") == 100 * USDC
    assert usdc.balance_of(funded_protocol.address) == 100_000 * USDC
    assert funded_protocol.pool.total_flash_loan_fees == 0

def test_short_repayment(funded_protocol, receiver, usdc):
    receiver.shortfall = 1
    with pytest.raises(FlashLoanRepaymentError):
        funded_protocol.flash_loan("bot", receiver, 10_000 * USDC)

    assert usdc.balance_of("receiver") == 100 * USDC
    assert funded_protocol.pool.tracked_base_balance == 100_000 * USDC

def test_flash_loan_beyond_liquidity(funded_protocol, receiver):
    with pytest.raises(LowLiquidityError):
        funded_protocol.flash_loan("bot", receiver, 100_000 * USDC + 1)

def test_flash_loan_zero(funded_protocol, receiver):
    with pytest.raises(ZeroAmountError):
        funded_protocol.flash_loan("bot", receiver, 0)

def test_callback_cannot_reenter(funded_protocol, receiver, usdc, fund):
    fund(usdc, "receiver", 1_000 * USDC)
    receiver.callback = lambda: funded_protocol.supply_liquidity("receiver", 1_000 * USDC)

    with pytest.raises(ReentrancyError):
        funded_protocol.flash_loan("bot", receiver, 10_000 * USDC)

    assert usdc.balance_of("receiver") == 1_100 * USDC
    assert funded_protocol.pool.total_supplied_liquidity == 100_000 * USDC
    # the guard is released after the failed call
    funded_protocol.supply_liquidity("receiver", 1_000 * USDC)

def test_flash_loan_while_paused(funded_protocol, receiver, roles):
    roles.pause("pauser")
    with pytest.raises(ProtocolPausedError):
        funded_protocol.flash_loan("bot", receiver, 10_000 * USDC)
