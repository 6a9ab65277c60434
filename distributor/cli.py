import json
import logging
from typing import Union

import eth_utils as eth
import fire

from distributor import config as season_config
from distributor.encoder import encode_leaf
from distributor.env import LEDGER_DB_PATH, LOG_LEVEL
from distributor.errors import InvalidProof
from distributor.ledger import DistributionLedger
from distributor.merkle import verify as verify_proof
from distributor.models import TreeData, Writer
from distributor.models.DB import LedgerDB
from distributor.run import run
from distributor.token import TokenBank
from distributor.utils import yes_or_no


def _address(value: Union[str, int]) -> str:
    """fire parses unquoted 0x... arguments as ints, turn them back into addresses"""
    if isinstance(value, int):
        return eth.to_checksum_address("0x" + format(value, "040x"))
    return eth.to_checksum_address(value)


def _load(db_path: str) -> tuple[LedgerDB, DistributionLedger]:
    db = LedgerDB(db_path)
    return db, DistributionLedger.load(db)


def config(input_file: str, reports_dir: str = None) -> str:
    """Create a season folder from an input config"""
    return season_config.main(input_file, reports_dir)


def generate(season_path: str) -> str:
    """Build the merkle tree for a season folder and return the root"""
    return run(season_path).root


def proof(tree: str, address: str) -> str:
    """Claim requests for `address` from a tree snapshot, as JSON"""
    tree_data = Writer.read_tree_data(tree)
    claims = tree_data.claims_for(_address(address))
    return json.dumps([c.model_dump(mode="json") for c in claims], indent=2)


def verify(tree: str) -> int:
    """Recompute every leaf of a snapshot and check its proof against the root"""
    tree_data = Writer.read_tree_data(tree)
    root = eth.decode_hex(tree_data.root)
    checked = 0
    for address in tree_data.userProofs:
        for c in tree_data.claims_for(address):
            leaf = encode_leaf(address, c.seasonId, c.token, c.points)
            if not verify_proof(leaf, c.proof_bytes, root):
                raise InvalidProof(f"Proof for {address} / {c.token} does not verify")
            checked += 1
    print(f"✅ {checked} proofs verified against {tree_data.root}")
    return checked


class Ledger:
    """Local ledger backed by a tinydb file"""

    def __init__(self, db: str = LEDGER_DB_PATH):
        self._db_path = db

    def init(self, admin: str, address: str = None) -> str:
        ledger = DistributionLedger(TokenBank(), _address(admin))
        if address:
            ledger.address = _address(address)
        ledger.save(LedgerDB(self._db_path, drop=True))
        print(f"😃 Created a new ledger at {self._db_path}")
        return ledger.address

    def mint(self, token: str, to: str, amount: int) -> int:
        db, ledger = _load(self._db_path)
        ledger.bank.mint(_address(token), _address(to), amount)
        ledger.save(db)
        return ledger.bank.balance_of(_address(token), _address(to))

    def whitelist(self, caller: str, token: str, min_amount: int) -> None:
        db, ledger = _load(self._db_path)
        ledger.add_to_whitelist(_address(caller), [_address(token)], [min_amount])
        ledger.save(db)

    def fee(self, caller: str, rate: int, recipient: str = None) -> None:
        db, ledger = _load(self._db_path)
        ledger.set_reward_fee(_address(caller), rate)
        if recipient:
            ledger.set_fee_recipient(_address(caller), _address(recipient))
        ledger.save(db)

    def publish(self, caller: str, tree: str, season: int = None) -> str:
        tree_data = Writer.read_tree_data(tree)
        if season is None:
            season = next(iter(tree_data.userProofs.values())).seasonId
        db, ledger = _load(self._db_path)
        current = ledger.seasons.get(season)
        if current is not None and current.claimed:
            if not yes_or_no(f"Season {season} already has claims, replace its root?"):
                return current.root
        ledger.publish_root(_address(caller), season, tree_data.root)
        ledger.save(db)
        return tree_data.root

    def deposit(self, depositor: str, season: int, token: str, amount: int) -> int:
        db, ledger = _load(self._db_path)
        ledger.deposit_rewards(_address(depositor), season, [_address(token)], [amount])
        ledger.save(db)
        return ledger.get_pool_balance(season, _address(token))

    def claim(self, tree: str, address: str) -> int:
        tree_data: TreeData = Writer.read_tree_data(tree)
        claims = tree_data.claims_for(_address(address))
        if not claims:
            print(f"🤷 {_address(address)} has no rewards in {tree}")
            return 0
        db, ledger = _load(self._db_path)
        ledger.claim_rewards(_address(address), claims)
        ledger.save(db)
        print(f"💸 {len(claims)} rewards claimed by {_address(address)}")
        return len(claims)

    def state(self, season: int) -> str:
        _, ledger = _load(self._db_path)
        s = ledger.seasons.get(season)
        return json.dumps(s.model_dump(mode="json") if s else None, indent=2)


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    fire.Fire(
        {
            "config": config,
            "generate": generate,
            "proof": proof,
            "verify": verify,
            "ledger": Ledger,
        }
    )


if __name__ == "__main__":
    main()
