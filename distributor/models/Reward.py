from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from distributor.models.types import ChecksumAddress, Uint256


class RewardEvent(BaseModel):
    """
    A single quest completion as exported by the quest-progress store.
    :param `tokenId`: internal token identifier, resolved through the token registry
    :param `points`: whole reward points earned for the quest
    """

    model_config = ConfigDict(frozen=True)

    address: ChecksumAddress
    seasonId: Uint256
    tokenId: int
    points: Uint256


class RewardFact(BaseModel):
    """
    Cumulative reward for one (address, season, token). This is what gets hashed into a leaf.
    :param `points`: total reward denominated in the token's smallest unit
    """

    model_config = ConfigDict(frozen=True)

    address: ChecksumAddress
    seasonId: Uint256
    token: ChecksumAddress
    points: Uint256

    @property
    def key(self) -> tuple[int, str, str]:
        return (self.seasonId, self.address, self.token)
