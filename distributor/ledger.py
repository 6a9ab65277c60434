"""
The distribution ledger: per season roots, pools and claim records, plus the
whitelist and fee settings that govern deposits.

Every public operation runs as a single transaction. If anything raises, including an
outbound token transfer, ledger state and token balances are put back as they were
before the call. Claims record the leaf and debit the pool before any tokens leave the
ledger, so a transfer that calls back into `claim` sees the leaf as already claimed.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from copy import deepcopy
from typing import Iterator, Optional, Sequence, Union

import eth_utils as eth
from pydantic import TypeAdapter

from distributor.encoder import encode_leaf
from distributor.errors import (
    AlreadyClaimed,
    BelowMinimum,
    ClaimWindowOpen,
    FeeOutOfRange,
    InsufficientPool,
    InvalidProof,
    LengthMismatch,
    NoRootPublished,
    TokenNotWhitelisted,
    Unauthorized,
)
from distributor.merkle import verify
from distributor.models import (
    ClaimRequest,
    EthereumAddress,
    HexHash,
    LedgerEvent,
    LedgerSettings,
    Season,
    SeasonState,
    Uint256,
    to_hex_hash,
)
from distributor.models.DB import LedgerDB
from distributor.token import TokenBank

logger = logging.getLogger(__name__)

# fixed point scale for fee rates: SCALE == 100%
SCALE = 10**18

# unused rewards can be withdrawn this long after the latest root was published
CLAIM_WINDOW = 30 * 24 * 60 * 60

DEFAULT_LEDGER_ADDRESS = "0x50F23827A5d1082a227C0f6C4813890Ee3553BEf"

_amounts = TypeAdapter(list[Uint256])
_season_id = TypeAdapter(Uint256)


def split_fee(amount: int, rate: int) -> tuple[int, int]:
    """Returns (fee, net) for a deposit, rounding the fee down. fee + net == amount"""
    fee = amount * rate // SCALE
    return fee, amount - fee


class DistributionLedger:
    def __init__(
        self,
        bank: TokenBank,
        admin: EthereumAddress,
        address: EthereumAddress = DEFAULT_LEDGER_ADDRESS,
    ):
        admin = eth.to_checksum_address(admin)
        self.bank = bank
        self.address = eth.to_checksum_address(address)
        self.settings = LedgerSettings(admins=[admin], fee_recipient=admin)
        self.seasons: dict[int, Season] = {}
        self.events: list[LedgerEvent] = []

    @classmethod
    def from_state(
        cls,
        bank: TokenBank,
        address: EthereumAddress,
        settings: LedgerSettings,
        seasons: list[Season],
        events: Optional[list[LedgerEvent]] = None,
    ) -> DistributionLedger:
        ledger = cls(bank, settings.admins[0], address)
        ledger.settings = settings
        ledger.seasons = {s.id: s for s in seasons}
        ledger.events = list(events or [])
        return ledger

    # internals

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        settings = deepcopy(self.settings)
        seasons = deepcopy(self.seasons)
        n_events = len(self.events)
        balances = self.bank.snapshot()
        try:
            yield
        except Exception:
            self.settings = settings
            self.seasons = seasons
            del self.events[n_events:]
            self.bank.restore(balances)
            raise

    def _require_admin(self, caller: EthereumAddress) -> None:
        if not self.is_admin(caller):
            raise Unauthorized(f"{caller} is not an admin")

    def _season(self, season_id: int) -> Season:
        if season_id not in self.seasons:
            self.seasons[season_id] = Season(id=season_id)
        return self.seasons[season_id]

    def _emit(self, name: str, **args) -> None:
        self.events.append(LedgerEvent(name=name, args=args))
        logger.info("%s %s", name, args)

    # roles

    def is_admin(self, account: EthereumAddress) -> bool:
        return eth.to_checksum_address(account) in self.settings.admins

    def grant_admin(self, caller: EthereumAddress, account: EthereumAddress) -> None:
        with self._transaction():
            self._require_admin(caller)
            account = eth.to_checksum_address(account)
            if account not in self.settings.admins:
                self.settings.admins.append(account)
                self._emit("AdminGranted", account=account)

    def revoke_admin(self, caller: EthereumAddress, account: EthereumAddress) -> None:
        with self._transaction():
            self._require_admin(caller)
            account = eth.to_checksum_address(account)
            if account in self.settings.admins:
                if len(self.settings.admins) == 1:
                    raise Unauthorized("Cannot revoke the last admin")
                self.settings.admins.remove(account)
                self._emit("AdminRevoked", account=account)

    # roots

    def publish_root(
        self,
        caller: EthereumAddress,
        season_id: int,
        root: Union[HexHash, bytes],
        now: Optional[int] = None,
    ) -> None:
        """
        Set or overwrite the root for a season. Leaves claimed under an earlier root stay
        claimed, proofs against the earlier root stop verifying.
        """
        season_id = _season_id.validate_python(season_id)
        with self._transaction():
            self._require_admin(caller)
            hex_root = to_hex_hash(root)
            season = self._season(season_id)
            if season.root is not None and season.claimed:
                logger.warning(
                    "Replacing root %s of season %d which already has %d claims",
                    season.root,
                    season_id,
                    len(season.claimed),
                )
            season.root = hex_root
            season.root_version += 1
            season.root_published_at = int(time.time()) if now is None else now
            self._emit(
                "MerkleRootUpdated",
                seasonId=season_id,
                root=hex_root,
                version=season.root_version,
            )

    update_merkle_root = publish_root

    def get_merkle_root(self, season_id: int) -> Optional[HexHash]:
        season = self.seasons.get(season_id)
        return season.root if season else None

    def season_state(self, season_id: int) -> SeasonState:
        season = self.seasons.get(season_id)
        return season.state if season else SeasonState.NO_ROOT

    # claims

    def claim(
        self,
        claimant: EthereumAddress,
        season_id: int,
        token: EthereumAddress,
        points: int,
        proof: Sequence[Union[HexHash, bytes]],
    ) -> None:
        request = ClaimRequest(
            seasonId=season_id, token=token, points=points, proof=tuple(proof)
        )
        self.claim_rewards(claimant, [request])

    def claim_rewards(
        self, claimant: EthereumAddress, claims: Sequence[ClaimRequest]
    ) -> None:
        """
        Claim any number of rewards in one go. Every claim is checked against the state left by
        the claims before it in the batch; if one fails nothing is paid out.
        """
        claimant = eth.to_checksum_address(claimant)
        with self._transaction():
            # checks
            pending: set[tuple[int, HexHash]] = set()
            debits: dict[tuple[int, str], int] = {}
            checked = []
            for c in claims:
                leaf = self._check_claim(claimant, c, pending, debits)
                pending.add((c.seasonId, leaf))
                debits[(c.seasonId, c.token)] = debits.get((c.seasonId, c.token), 0) + c.points
                checked.append((c, leaf))

            # effects
            for c, leaf in checked:
                season = self.seasons[c.seasonId]
                season.claimed.add(leaf)
                season.pool[c.token] = season.pool.get(c.token, 0) - c.points

            # interactions
            for c, leaf in checked:
                self.bank.transfer(c.token, self.address, claimant, c.points)
                self._emit(
                    "RewardClaimed",
                    user=claimant,
                    seasonId=c.seasonId,
                    token=c.token,
                    amount=c.points,
                    leaf=leaf,
                )

    def _check_claim(
        self,
        claimant: EthereumAddress,
        c: ClaimRequest,
        pending: set[tuple[int, HexHash]],
        debits: dict[tuple[int, str], int],
    ) -> HexHash:
        season = self.seasons.get(c.seasonId)
        if season is None or season.root is None:
            raise NoRootPublished(f"No root published for season {c.seasonId}")

        leaf = encode_leaf(claimant, c.seasonId, c.token, c.points)
        hex_leaf = eth.encode_hex(leaf)
        if hex_leaf in season.claimed or (c.seasonId, hex_leaf) in pending:
            raise AlreadyClaimed(f"{claimant} already claimed {hex_leaf}")

        if not verify(leaf, c.proof_bytes, eth.decode_hex(season.root)):
            raise InvalidProof(
                f"Proof for {claimant} does not match root of season {c.seasonId}"
            )

        available = season.pool.get(c.token, 0) - debits.get((c.seasonId, c.token), 0)
        if available < c.points:
            raise InsufficientPool(
                f"Season {c.seasonId} pool holds {available} of {c.token}, claim needs {c.points}"
            )
        return hex_leaf

    def has_claimed(self, season_id: int, leaf: Union[HexHash, bytes]) -> bool:
        season = self.seasons.get(season_id)
        return season is not None and to_hex_hash(leaf) in season.claimed

    def get_pool_balance(self, season_id: int, token: EthereumAddress) -> int:
        season = self.seasons.get(season_id)
        if season is None:
            return 0
        return season.pool.get(eth.to_checksum_address(token), 0)

    # whitelist and fees

    def add_to_whitelist(
        self,
        caller: EthereumAddress,
        tokens: Sequence[EthereumAddress],
        min_amounts: Sequence[int],
    ) -> None:
        with self._transaction():
            self._require_admin(caller)
            if len(tokens) != len(min_amounts):
                raise LengthMismatch(
                    f"{len(tokens)} tokens but {len(min_amounts)} minimum amounts"
                )
            for token, min_amount in zip(tokens, _amounts.validate_python(list(min_amounts))):
                token = eth.to_checksum_address(token)
                self.settings.whitelist[token] = min_amount
                self._emit("TokenWhitelisted", token=token, minAmount=min_amount)

    def remove_from_whitelist(
        self, caller: EthereumAddress, tokens: Sequence[EthereumAddress]
    ) -> None:
        with self._transaction():
            self._require_admin(caller)
            for token in tokens:
                token = eth.to_checksum_address(token)
                if self.settings.whitelist.pop(token, None) is not None:
                    self._emit("TokenRemovedFromWhitelist", token=token)

    def is_token_whitelisted(self, token: EthereumAddress) -> bool:
        return eth.to_checksum_address(token) in self.settings.whitelist

    def get_min_amount_for_token(self, token: EthereumAddress) -> int:
        return self.settings.whitelist.get(eth.to_checksum_address(token), 0)

    def set_reward_fee(self, caller: EthereumAddress, rate: int) -> None:
        with self._transaction():
            self._require_admin(caller)
            if isinstance(rate, bool) or not isinstance(rate, int) or not 0 <= rate <= SCALE:
                raise FeeOutOfRange(f"Fee rate {rate} outside of [0, {SCALE}]")
            self.settings.reward_fee = rate
            self._emit("RewardFeeUpdated", rate=rate)

    def set_fee_recipient(self, caller: EthereumAddress, recipient: EthereumAddress) -> None:
        with self._transaction():
            self._require_admin(caller)
            self.settings.fee_recipient = eth.to_checksum_address(recipient)
            self._emit("FeeRecipientUpdated", recipient=self.settings.fee_recipient)

    @property
    def reward_fee(self) -> int:
        return self.settings.reward_fee

    @property
    def fee_recipient(self) -> EthereumAddress:
        return self.settings.fee_recipient

    # deposits

    def deposit_rewards(
        self,
        depositor: EthereumAddress,
        season_id: int,
        tokens: Sequence[EthereumAddress],
        amounts: Sequence[int],
    ) -> None:
        """
        Fund a season pool. The depositor pays the full amount, the fee goes to the fee
        recipient and only the remainder becomes claimable.
        """
        season_id = _season_id.validate_python(season_id)
        depositor = eth.to_checksum_address(depositor)
        with self._transaction():
            if len(tokens) != len(amounts):
                raise LengthMismatch(f"{len(tokens)} tokens but {len(amounts)} amounts")
            pairs = list(
                zip(
                    [eth.to_checksum_address(t) for t in tokens],
                    _amounts.validate_python(list(amounts)),
                )
            )

            for token, amount in pairs:
                if token not in self.settings.whitelist:
                    raise TokenNotWhitelisted(f"{token} is not whitelisted")
                if amount < self.settings.whitelist[token]:
                    raise BelowMinimum(
                        f"Deposit of {amount} {token} is below the minimum of "
                        f"{self.settings.whitelist[token]}"
                    )

            season = self._season(season_id)
            for token, amount in pairs:
                fee, net = split_fee(amount, self.settings.reward_fee)
                if fee > 0:
                    self.bank.transfer(token, depositor, self.settings.fee_recipient, fee)
                    self._emit(
                        "FeeCollected",
                        token=token,
                        recipient=self.settings.fee_recipient,
                        amount=fee,
                    )
                self.bank.transfer(token, depositor, self.address, net)
                season.pool[token] = season.pool.get(token, 0) + net
                self._emit(
                    "RewardsDeposited",
                    depositor=depositor,
                    seasonId=season_id,
                    token=token,
                    amount=net,
                    fee=fee,
                )

    def withdraw_unused_rewards(
        self,
        caller: EthereumAddress,
        season_id: int,
        tokens: Sequence[EthereumAddress],
        now: Optional[int] = None,
    ) -> dict[EthereumAddress, int]:
        """
        Return what is left in a season pool to the calling admin, once the claim window
        after the latest root publication has closed.
        """
        season_id = _season_id.validate_python(season_id)
        caller = eth.to_checksum_address(caller)
        now = int(time.time()) if now is None else now
        with self._transaction():
            self._require_admin(caller)
            season = self.seasons.get(season_id)
            if season is None or season.root_published_at is None:
                raise NoRootPublished(f"No root published for season {season_id}")
            opens_at = season.root_published_at + CLAIM_WINDOW
            if now < opens_at:
                raise ClaimWindowOpen(
                    f"Season {season_id} claims are open until {opens_at}, now is {now}"
                )

            withdrawn = {}
            for token in tokens:
                token = eth.to_checksum_address(token)
                amount = season.pool.get(token, 0)
                season.pool[token] = 0
                withdrawn[token] = amount

            for token, amount in withdrawn.items():
                if amount > 0:
                    self.bank.transfer(token, self.address, caller, amount)
                self._emit(
                    "UnusedRewardsWithdrawn",
                    seasonId=season_id,
                    token=token,
                    amount=amount,
                    to=caller,
                )
            return withdrawn

    # persistence

    def save(self, db: LedgerDB) -> None:
        db.write_state(
            self.address,
            self.settings,
            list(self.seasons.values()),
            self.events,
            self.bank.holdings(),
        )

    @classmethod
    def load(cls, db: LedgerDB) -> DistributionLedger:
        address, settings = db.read_settings()
        bank = TokenBank.from_holdings(db.read_balances())
        return cls.from_state(
            bank, address, settings, db.read_seasons(), db.read_events()
        )
