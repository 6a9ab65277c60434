from __future__ import annotations

import eth_utils as eth
from pydantic import BaseModel, ConfigDict, model_validator

from distributor.errors import LengthMismatch
from distributor.models.types import ChecksumAddress, EthereumAddress, Hash32, Uint256


class ClaimRequest(BaseModel):
    """
    One claim as submitted by a user. The claimant is never part of the request,
    it is always the caller, so a proof can only pay out to the address it was built for.
    :param `proof`: sibling hashes from the leaf up to the root
    """

    model_config = ConfigDict(frozen=True)

    seasonId: Uint256
    token: ChecksumAddress
    points: Uint256
    proof: tuple[Hash32, ...] = ()

    @property
    def proof_bytes(self) -> list[bytes]:
        return [eth.decode_hex(p) for p in self.proof]


class UserProofs(BaseModel):
    """
    Everything a user needs to claim for a season, one entry per reward token.
    `tokens`, `points` and `proofs` are parallel lists.
    """

    seasonId: Uint256
    tokens: list[ChecksumAddress]
    points: list[Uint256]
    proofs: list[list[Hash32]]

    @model_validator(mode="after")
    def check_lengths(self) -> UserProofs:
        if not len(self.tokens) == len(self.points) == len(self.proofs):
            raise LengthMismatch(
                f"tokens ({len(self.tokens)}), points ({len(self.points)}) and "
                f"proofs ({len(self.proofs)}) must have the same length"
            )
        return self

    def to_claims(self) -> list[ClaimRequest]:
        return [
            ClaimRequest(seasonId=self.seasonId, token=t, points=p, proof=tuple(proof))
            for t, p, proof in zip(self.tokens, self.points, self.proofs)
        ]


class TreeData(BaseModel):
    """
    The season snapshot handed out to users. `root` gets published on-chain,
    `userProofs` is keyed by checksummed address.
    """

    root: Hash32
    leaves: list[Hash32]
    userProofs: dict[EthereumAddress, UserProofs]

    @model_validator(mode="after")
    def checksum_users(self) -> TreeData:
        self.userProofs = {
            eth.to_checksum_address(a): p for a, p in self.userProofs.items()
        }
        return self

    def claims_for(self, address: EthereumAddress) -> list[ClaimRequest]:
        """All claim requests for `address`, empty if the address has no rewards"""
        user = self.userProofs.get(eth.to_checksum_address(address))
        if user is None:
            return []
        return user.to_claims()
