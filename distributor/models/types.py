from typing import Annotated, Union

import eth_utils as eth
from pydantic import AfterValidator, BeforeValidator, Field

# type aliases for clarity
EthereumAddress = str
HexHash = str

MAX_UINT256 = 2**256 - 1
HASH_SIZE = 32


def to_hex_hash(value: Union[str, bytes]) -> HexHash:
    """
    Normalise a 32 byte hash, passed either as raw bytes or as 0x-prefixed hex,
    into lowercase 0x-prefixed hex. Anything that is not exactly 32 bytes is rejected.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str) and eth.is_hex(value):
        raw = eth.decode_hex(value)
    else:
        raise ValueError(f"{value!r} is not a hex encoded hash")

    if len(raw) != HASH_SIZE:
        raise ValueError(f"Hash must be {HASH_SIZE} bytes, got {len(raw)}")
    return eth.encode_hex(raw)


Uint256 = Annotated[int, Field(ge=0, le=MAX_UINT256, strict=True)]
ChecksumAddress = Annotated[EthereumAddress, AfterValidator(eth.to_checksum_address)]
Hash32 = Annotated[HexHash, BeforeValidator(to_hex_hash)]
