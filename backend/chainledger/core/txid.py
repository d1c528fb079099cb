"""Stand-in identifiers for a chain this service does not talk to.

Services only depend on the ``TxIdGenerator`` interface, so a real chain
adapter can replace ``RandomTxIdGenerator`` without touching them.
"""
import random
import secrets
from typing import Protocol

SIMULATED_BLOCK_RANGE = (18_000_000, 19_000_000)


class TxIdGenerator(Protocol):
    def new_tx_id(self) -> str: ...

    def new_block_number(self) -> int: ...


class RandomTxIdGenerator:
    """32 random bytes, hex encoded with a 0x prefix (66 chars, same shape as an EVM hash)."""

    def new_tx_id(self) -> str:
        return "0x" + secrets.token_hex(32)

    def new_block_number(self) -> int:
        low, high = SIMULATED_BLOCK_RANGE
        return random.randrange(low, high)


tx_id_generator = RandomTxIdGenerator()
