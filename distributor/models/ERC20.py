from __future__ import annotations

import eth_utils as eth
from pydantic import BaseModel, Field, field_validator

from distributor.models.types import EthereumAddress


class BaseERC20(BaseModel):
    """Simply holds the token address alongside an identifier"""

    address: EthereumAddress
    symbol: str

    @field_validator("address")
    @classmethod
    def checksum_token(cls, addr: EthereumAddress):
        return eth.to_checksum_address(addr)


class ERC20Metadata(BaseERC20):
    """Adds additional metadata about the token"""

    decimals: int = Field(default=18, ge=0, le=77)

    @property
    def unit(self) -> int:
        """Number of base units in one whole token"""
        return 10**self.decimals


class RegisteredToken(ERC20Metadata):
    """
    Entry in the token registry: maps the internal token id used by the
    quest-progress store to the on-chain token.
    """

    id: int
