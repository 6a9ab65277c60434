from pathlib import Path

import pytest
from eth_utils import to_checksum_address

from distributor.encoder import encode_fact
from distributor.ledger import DistributionLedger
from distributor.merkle import MerkleTree, build_tree
from distributor.models import RewardFact
from distributor.token import TokenBank

STUBS = Path(__file__).parent / "stubs"

ADMIN = to_checksum_address("0x9bc33f6155efacc290c3c50e9b5b24b668562732")
DEPOSITOR = to_checksum_address("0xfde38ad4bbbec867e6cb4bb31fbfb2074c959a83")
FEE_RECIPIENT = to_checksum_address("0x8bb4c0b502f869af3b25166930507a6e8c3038d4")
U1 = to_checksum_address("0x071c052a78cf8dbdd4f61381596ec64078d1840b")
U2 = to_checksum_address("0xe755f77162bf252ae289482eda6f48f4c0190306")
U3 = to_checksum_address("0x7ac54a0406fa2b465e0d57c66597be83a4b149fc")
TOKEN = to_checksum_address("0x5e6cb7e728e1c320855587e1d9c6f7972ebdd6d5")
OTHER_TOKEN = to_checksum_address("0x1234567890123456789012345678901234567890")

SEASON = 1


@pytest.fixture()
def ADDRESSES():
    return [U1, U2, U3]


@pytest.fixture
def bank() -> TokenBank:
    return TokenBank()


@pytest.fixture
def ledger(bank: TokenBank) -> DistributionLedger:
    return DistributionLedger(bank, ADMIN)


@pytest.fixture
def facts() -> list[RewardFact]:
    return [
        RewardFact(address=U1, seasonId=SEASON, token=TOKEN, points=200),
        RewardFact(address=U2, seasonId=SEASON, token=TOKEN, points=150),
    ]


@pytest.fixture
def tree(facts: list[RewardFact]) -> MerkleTree:
    return build_tree(encode_fact(f) for f in facts)


def fund(ledger: DistributionLedger, amount: int, token: str = TOKEN, season: int = SEASON):
    """Whitelist `token` and deposit `amount` for `season` with no fee"""
    ledger.add_to_whitelist(ADMIN, [token], [0])
    ledger.bank.mint(token, DEPOSITOR, amount)
    ledger.deposit_rewards(DEPOSITOR, season, [token], [amount])


@pytest.fixture
def funded_ledger(ledger: DistributionLedger, tree: MerkleTree) -> DistributionLedger:
    """Scenario ledger: root over U1 (200) and U2 (150), pool of 500 net"""
    ledger.publish_root(ADMIN, SEASON, tree.root, now=1_700_000_000)
    fund(ledger, 500)
    return ledger
