from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from distributor.models.types import EthereumAddress, HexHash


class SeasonState(str, Enum):
    """
    :state NO_ROOT: nothing can be claimed until an admin publishes a root
    :state ROOT_PUBLISHED: claims are verified against the current root
    """

    NO_ROOT = "no_root"
    ROOT_PUBLISHED = "root_published"


class Season(BaseModel):
    """
    Ledger state for one reward epoch. Only the ledger mutates these.
    :param `root_version`: bumped every time a root is (re)published
    :param `pool`: claimable balance per token, net of fees
    :param `claimed`: hex leaf hashes that have already been paid out
    """

    id: int
    root: Optional[HexHash] = None
    root_version: int = 0
    root_published_at: Optional[int] = None
    pool: dict[EthereumAddress, int] = {}
    claimed: set[HexHash] = set()

    @property
    def state(self) -> SeasonState:
        if self.root is None:
            return SeasonState.NO_ROOT
        return SeasonState.ROOT_PUBLISHED


class LedgerSettings(BaseModel):
    """
    Admin controlled configuration, shared by every season.
    :param `reward_fee`: fee rate in 18 decimal fixed point, 10**18 == 100%
    :param `whitelist`: token address to minimum deposit amount
    """

    admins: list[EthereumAddress]
    fee_recipient: EthereumAddress
    reward_fee: int = 0
    whitelist: dict[EthereumAddress, int] = {}


class LedgerEvent(BaseModel):
    """Record of a state change, the off-chain equivalent of a contract event"""

    name: str
    args: dict[str, Any]
