from typing import Iterable

import eth_utils as eth

from distributor.models import HexHash


def yes_or_no(question: str) -> bool:
    """
    Require y or n (case insenstive) as answer to `question`.
    Defaults to N with no response
    """
    while "the answer is invalid":
        reply = input(f"{question} [y/N]: ")
        if not reply:
            return False
        reply = str(reply).lower().strip()
        if reply[:1] == "y":
            return True
        if reply[:1] == "n":
            return False
    return False


def to_hex_list(hashes: Iterable[bytes]) -> list[HexHash]:
    return [eth.encode_hex(h) for h in hashes]
