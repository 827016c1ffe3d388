from __future__ import annotations

import rlp

from dataclasses import dataclass, field
from typing import Dict

from eth_utils import keccak
from rlp.sedes import big_endian_int, binary, Binary, CountableList

from ..common_les.constants import HASH_LEN
from ..common_les.eth_proto import LegacyTx


hash32 = Binary.fixed_length(HASH_LEN)


class BlockHeader(rlp.Serializable):
    fields = (
        ('parent_hash', hash32),
        ('coinbase', binary),
        ('state_root', hash32),
        ('tx_root', hash32),
        ('receipt_root', hash32),
        ('number', big_endian_int),
        ('gas_limit', big_endian_int),
        ('gas_used', big_endian_int),
        ('timestamp', big_endian_int),
        ('extra_data', binary),
    )

    def block_hash(self) -> bytes:
        return keccak(rlp.encode(self))


class BlockBody(rlp.Serializable):
    fields = (
        ('txs', CountableList(LegacyTx)),
        ('uncles', CountableList(BlockHeader)),
    )


class Receipt(rlp.Serializable):
    fields = (
        ('status', big_endian_int),
        ('cumulative_gas_used', big_endian_int),
        ('contract_address', binary),
        ('logs', CountableList(binary)),
    )


class TxLookupEntry(rlp.Serializable):
    fields = (
        ('block_hash', hash32),
        ('block_index', big_endian_int),
        ('index', big_endian_int),
    )


class AccountRecord(rlp.Serializable):
    fields = (
        ('nonce', big_endian_int),
        ('balance', big_endian_int),
        ('storage_root', hash32),
        ('code_hash', hash32),
    )


EMPTY_ROOT_HASH = keccak(rlp.encode(b''))


@dataclass
class Account:
    address: bytes
    nonce: int = 0
    balance: int = 0
    code: bytes = b''
    storage: Dict[bytes, bytes] = field(default_factory=dict)

    @property
    def addr_hash(self) -> bytes:
        return keccak(self.address)

    @property
    def code_hash(self) -> bytes:
        return keccak(self.code)

    def storage_root(self) -> bytes:
        if not self.storage:
            return EMPTY_ROOT_HASH
        return keccak(rlp.encode([[k, v] for k, v in sorted(self.storage.items())]))

    def to_record(self) -> AccountRecord:
        return AccountRecord(self.nonce, self.balance, self.storage_root(), self.code_hash)
