import pytest
from pydantic import ValidationError

from distributor.errors import (
    BelowMinimum,
    FeeOutOfRange,
    InsufficientBalance,
    LengthMismatch,
    TokenNotWhitelisted,
    Unauthorized,
)
from distributor.ledger import SCALE, DistributionLedger, split_fee
from distributor.test.conftest import (
    ADMIN,
    DEPOSITOR,
    FEE_RECIPIENT,
    OTHER_TOKEN,
    SEASON,
    TOKEN,
    U1,
)

ETHER = 10**18


@pytest.fixture
def fee_ledger(ledger: DistributionLedger) -> DistributionLedger:
    ledger.add_to_whitelist(ADMIN, [TOKEN], [100 * ETHER])
    ledger.set_fee_recipient(ADMIN, FEE_RECIPIENT)
    ledger.bank.mint(TOKEN, DEPOSITOR, 10_000 * ETHER)
    return ledger


def test_deposit_with_fee(fee_ledger: DistributionLedger):
    ledger = fee_ledger
    # 0.2%
    ledger.set_reward_fee(ADMIN, 2 * 10**15)

    ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [1000 * ETHER])

    assert ledger.bank.balance_of(TOKEN, FEE_RECIPIENT) == 2 * ETHER
    assert ledger.get_pool_balance(SEASON, TOKEN) == 998 * ETHER
    assert ledger.bank.balance_of(TOKEN, ledger.address) == 998 * ETHER
    assert ledger.bank.balance_of(TOKEN, DEPOSITOR) == 9_000 * ETHER


def test_deposit_fee_whole_tokens(fee_ledger: DistributionLedger):
    ledger = fee_ledger
    ledger.add_to_whitelist(ADMIN, [TOKEN], [0])
    ledger.set_reward_fee(ADMIN, 2 * 10**15)

    ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [1000])

    assert ledger.bank.balance_of(TOKEN, FEE_RECIPIENT) == 2
    assert ledger.get_pool_balance(SEASON, TOKEN) == 998


@pytest.mark.parametrize("rate", [0, 1, 2 * 10**15, 10**17, SCALE // 3, SCALE - 1, SCALE])
@pytest.mark.parametrize("amount", [0, 1, 7, 999, 1000 * ETHER, 2**200 + 13])
def test_split_fee_conserves_value(rate, amount):
    fee, net = split_fee(amount, rate)

    assert fee + net == amount
    assert fee == amount * rate // SCALE
    assert 0 <= fee <= amount


def test_zero_and_full_fee(fee_ledger: DistributionLedger):
    ledger = fee_ledger
    ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [100 * ETHER])
    assert ledger.bank.balance_of(TOKEN, FEE_RECIPIENT) == 0
    assert ledger.get_pool_balance(SEASON, TOKEN) == 100 * ETHER

    ledger.set_reward_fee(ADMIN, SCALE)
    ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [100 * ETHER])
    assert ledger.bank.balance_of(TOKEN, FEE_RECIPIENT) == 100 * ETHER
    assert ledger.get_pool_balance(SEASON, TOKEN) == 100 * ETHER


def test_deposits_accumulate_per_season(fee_ledger: DistributionLedger):
    ledger = fee_ledger
    ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [100 * ETHER])
    ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [200 * ETHER])
    ledger.deposit_rewards(DEPOSITOR, 2, [TOKEN], [150 * ETHER])

    assert ledger.get_pool_balance(SEASON, TOKEN) == 300 * ETHER
    assert ledger.get_pool_balance(2, TOKEN) == 150 * ETHER
    assert ledger.get_pool_balance(3, TOKEN) == 0


def test_deposit_not_whitelisted(fee_ledger: DistributionLedger):
    ledger = fee_ledger
    ledger.bank.mint(OTHER_TOKEN, DEPOSITOR, 1000)

    with pytest.raises(TokenNotWhitelisted):
        ledger.deposit_rewards(DEPOSITOR, SEASON, [OTHER_TOKEN], [1000])
    assert ledger.bank.balance_of(OTHER_TOKEN, DEPOSITOR) == 1000


def test_deposit_below_minimum(fee_ledger: DistributionLedger):
    with pytest.raises(BelowMinimum):
        fee_ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [100 * ETHER - 1])
    assert fee_ledger.get_pool_balance(SEASON, TOKEN) == 0


def test_multi_token_deposit_is_atomic(fee_ledger: DistributionLedger):
    ledger = fee_ledger
    ledger.bank.mint(OTHER_TOKEN, DEPOSITOR, 1000)

    with pytest.raises(TokenNotWhitelisted):
        ledger.deposit_rewards(
            DEPOSITOR, SEASON, [TOKEN, OTHER_TOKEN], [100 * ETHER, 1000]
        )
    assert ledger.get_pool_balance(SEASON, TOKEN) == 0
    assert ledger.bank.balance_of(TOKEN, DEPOSITOR) == 10_000 * ETHER

    ledger.add_to_whitelist(ADMIN, [OTHER_TOKEN], [1])
    ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN, OTHER_TOKEN], [100 * ETHER, 1000])
    assert ledger.get_pool_balance(SEASON, OTHER_TOKEN) == 1000


def test_deposit_insufficient_balance_rolls_back(fee_ledger: DistributionLedger):
    ledger = fee_ledger
    ledger.set_reward_fee(ADMIN, 10**16)

    # the first deposit fits, the second one does not
    with pytest.raises(InsufficientBalance):
        ledger.deposit_rewards(
            DEPOSITOR, SEASON, [TOKEN, TOKEN], [5_000 * ETHER, 6_000 * ETHER]
        )
    assert ledger.bank.balance_of(TOKEN, DEPOSITOR) == 10_000 * ETHER
    assert ledger.bank.balance_of(TOKEN, FEE_RECIPIENT) == 0
    assert ledger.get_pool_balance(SEASON, TOKEN) == 0


def test_deposit_length_mismatch(fee_ledger: DistributionLedger):
    with pytest.raises(LengthMismatch):
        fee_ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [1, 2])


def test_deposit_negative_amount(fee_ledger: DistributionLedger):
    with pytest.raises(ValidationError):
        fee_ledger.deposit_rewards(DEPOSITOR, SEASON, [TOKEN], [-1])


def test_whitelist(ledger: DistributionLedger):
    assert not ledger.is_token_whitelisted(TOKEN)
    assert ledger.get_min_amount_for_token(TOKEN) == 0

    ledger.add_to_whitelist(ADMIN, [TOKEN.lower(), OTHER_TOKEN], [100, 5])
    assert ledger.is_token_whitelisted(TOKEN)
    assert ledger.get_min_amount_for_token(TOKEN) == 100
    assert ledger.get_min_amount_for_token(OTHER_TOKEN) == 5

    # whitelisting again overwrites the minimum
    ledger.add_to_whitelist(ADMIN, [TOKEN], [1])
    assert ledger.get_min_amount_for_token(TOKEN) == 1

    ledger.remove_from_whitelist(ADMIN, [OTHER_TOKEN])
    assert not ledger.is_token_whitelisted(OTHER_TOKEN)


def test_whitelist_errors(ledger: DistributionLedger):
    with pytest.raises(LengthMismatch):
        ledger.add_to_whitelist(ADMIN, [TOKEN, OTHER_TOKEN], [100])
    with pytest.raises(Unauthorized):
        ledger.add_to_whitelist(U1, [TOKEN], [100])
    with pytest.raises(Unauthorized):
        ledger.remove_from_whitelist(U1, [TOKEN])
    assert not ledger.is_token_whitelisted(TOKEN)


@pytest.mark.parametrize("rate", [-1, SCALE + 1, 10**30])
def test_fee_out_of_range(ledger: DistributionLedger, rate):
    with pytest.raises(FeeOutOfRange):
        ledger.set_reward_fee(ADMIN, rate)
    assert ledger.reward_fee == 0


def test_fee_settings_require_admin(ledger: DistributionLedger):
    with pytest.raises(Unauthorized):
        ledger.set_reward_fee(U1, 10)
    with pytest.raises(Unauthorized):
        ledger.set_fee_recipient(U1, U1)

    assert ledger.fee_recipient == ADMIN
    ledger.set_fee_recipient(ADMIN, FEE_RECIPIENT.lower())
    assert ledger.fee_recipient == FEE_RECIPIENT
