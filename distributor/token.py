import logging
from collections import defaultdict
from typing import Callable

import eth_utils as eth

from distributor.errors import InsufficientBalance
from distributor.models import EthereumAddress

logger = logging.getLogger(__name__)

# (token, sender, recipient, amount), called after balances have moved
TransferHook = Callable[[EthereumAddress, EthereumAddress, EthereumAddress, int], None]


class TokenBank:
    """
    Fungible balances for any number of tokens. Tokens are opaque, all we track is
    who holds how much of what.

    Hooks run after every transfer, the same way a token with receive callbacks would hand
    control to the recipient in the middle of a payout.
    """

    def __init__(self):
        self._balances: dict[tuple[EthereumAddress, EthereumAddress], int] = defaultdict(int)
        self.hooks: list[TransferHook] = []

    @staticmethod
    def _key(token: EthereumAddress, holder: EthereumAddress) -> tuple[str, str]:
        return (eth.to_checksum_address(token), eth.to_checksum_address(holder))

    def balance_of(self, token: EthereumAddress, holder: EthereumAddress) -> int:
        return self._balances.get(self._key(token, holder), 0)

    def mint(self, token: EthereumAddress, to: EthereumAddress, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        self._balances[self._key(token, to)] += amount

    def transfer(
        self,
        token: EthereumAddress,
        sender: EthereumAddress,
        recipient: EthereumAddress,
        amount: int,
    ) -> None:
        if amount < 0:
            raise ValueError("Cannot transfer a negative amount")
        src, dst = self._key(token, sender), self._key(token, recipient)
        if self._balances.get(src, 0) < amount:
            raise InsufficientBalance(
                f"{src[1]} holds {self._balances.get(src, 0)} of {src[0]}, needs {amount}"
            )
        self._balances[src] -= amount
        self._balances[dst] += amount
        logger.debug("transfer %s %s -> %s: %d", src[0], src[1], dst[1], amount)

        for hook in self.hooks:
            hook(src[0], src[1], dst[1], amount)

    def snapshot(self) -> dict[tuple[str, str], int]:
        return dict(self._balances)

    def restore(self, snapshot: dict[tuple[str, str], int]) -> None:
        self._balances = defaultdict(int, snapshot)

    def holdings(self) -> list[dict]:
        """Non-zero balances as plain records, used for persistence"""
        return [
            {"token": token, "holder": holder, "amount": amount}
            for (token, holder), amount in sorted(self._balances.items())
            if amount > 0
        ]

    @classmethod
    def from_holdings(cls, holdings: list[dict]) -> "TokenBank":
        bank = cls()
        for h in holdings:
            bank.mint(h["token"], h["holder"], int(h["amount"]))
        return bank
