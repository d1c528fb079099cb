from chainledger.core.broadcast import EventBroadcaster, get_broadcaster
from chainledger.core.txid import TxIdGenerator, tx_id_generator

__all__ = ["get_broadcaster", "get_txid_generator", "EventBroadcaster", "TxIdGenerator"]


def get_txid_generator() -> TxIdGenerator:
    return tx_id_generator
