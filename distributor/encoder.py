"""
Leaf encoding shared by the tree builder and the claim verifier.

A leaf is keccak256(abi.encodePacked(address account, uint256 seasonId, address token, uint256 points)):
20 + 32 + 20 + 32 = 104 bytes, fixed width with no delimiters. Changing the field order or any
width invalidates every proof already handed out.
"""
from typing import Union

import eth_utils as eth
from eth_abi.exceptions import EncodingError
from eth_abi.packed import encode_packed

from distributor.errors import InvalidLeafInput
from distributor.models import EthereumAddress, RewardFact

LEAF_TYPES = ["address", "uint256", "address", "uint256"]

AddressLike = Union[EthereumAddress, bytes]


def pack_leaf(
    address: AddressLike, season_id: int, token: AddressLike, points: int
) -> bytes:
    """Packed bytes that get hashed into the leaf"""
    try:
        return encode_packed(
            LEAF_TYPES,
            [
                eth.to_checksum_address(address),
                season_id,
                eth.to_checksum_address(token),
                points,
            ],
        )
    except (EncodingError, ValueError, TypeError) as e:
        raise InvalidLeafInput(
            f"Cannot encode leaf for {address!r}, season {season_id!r}, "
            f"token {token!r}, points {points!r}: {e}"
        ) from e


def encode_leaf(
    address: AddressLike, season_id: int, token: AddressLike, points: int
) -> bytes:
    return eth.keccak(pack_leaf(address, season_id, token, points))


def encode_fact(fact: RewardFact) -> bytes:
    return encode_leaf(fact.address, fact.seasonId, fact.token, fact.points)
