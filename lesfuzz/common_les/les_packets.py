from __future__ import annotations

import rlp

from dataclasses import dataclass
from typing import Optional

from rlp.sedes import big_endian_int, binary, boolean, Binary, CountableList
from rlp.exceptions import DeserializationError, SerializationError

from .constants import HASH_LEN
from .eth_proto import LegacyTx


hash32 = Binary.fixed_length(HASH_LEN)


@dataclass(frozen=True)
class HashOrNumber:
    """Origin of a header query, either a block hash or a block number"""
    hash: Optional[bytes] = None
    number: Optional[int] = None

    def __post_init__(self):
        if (self.hash is None) == (self.number is None):
            raise ValueError('HashOrNumber requires exactly one of hash or number')

    @staticmethod
    def from_hash(block_hash: bytes) -> HashOrNumber:
        return HashOrNumber(hash=block_hash)

    @staticmethod
    def from_number(block_num: int) -> HashOrNumber:
        return HashOrNumber(number=block_num)

    @property
    def is_hash(self) -> bool:
        return self.hash is not None


class HashOrNumberSedes:
    """32-byte string for a hash, big-endian integer for a number"""
    _max_num_len = 8

    def serialize(self, obj: HashOrNumber) -> bytes:
        if not isinstance(obj, HashOrNumber):
            raise SerializationError('Can only serialize HashOrNumber', obj)
        if obj.is_hash:
            return hash32.serialize(obj.hash)
        return big_endian_int.serialize(obj.number)

    def deserialize(self, serial) -> HashOrNumber:
        if not isinstance(serial, bytes):
            raise DeserializationError('Origin must be a string', serial)
        if len(serial) == HASH_LEN:
            return HashOrNumber.from_hash(serial)
        if len(serial) > self._max_num_len:
            raise DeserializationError(f'Origin number is too long: {len(serial)} bytes', serial)
        return HashOrNumber.from_number(big_endian_int.deserialize(serial))


hash_or_number = HashOrNumberSedes()


class GetBlockHeadersData(rlp.Serializable):
    fields = (
        ('origin', hash_or_number),
        ('amount', big_endian_int),
        ('skip', big_endian_int),
        ('reverse', boolean),
    )


class GetBlockHeadersPacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('query', GetBlockHeadersData),
    )

    def req_cnt(self) -> int:
        return self.query.amount


class GetBlockBodiesPacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('hashes', CountableList(hash32)),
    )

    def req_cnt(self) -> int:
        return len(self.hashes)


class CodeReq(rlp.Serializable):
    fields = (
        ('bhash', hash32),
        ('acc_key', binary),
    )


class GetCodePacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('reqs', CountableList(CodeReq)),
    )

    def req_cnt(self) -> int:
        return len(self.reqs)


class GetReceiptsPacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('hashes', CountableList(hash32)),
    )

    def req_cnt(self) -> int:
        return len(self.hashes)


class ProofReq(rlp.Serializable):
    """Empty acc_key asks for an account proof, otherwise for a storage proof of acc_key's storage"""
    fields = (
        ('bhash', hash32),
        ('acc_key', binary),
        ('key', binary),
        ('from_level', big_endian_int),
    )

    @property
    def is_storage_proof(self) -> bool:
        return len(self.acc_key) > 0


class GetProofsPacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('reqs', CountableList(ProofReq)),
    )

    def req_cnt(self) -> int:
        return len(self.reqs)


class HelperTrieReq(rlp.Serializable):
    fields = (
        ('type', big_endian_int),
        ('trie_idx', big_endian_int),
        ('key', binary),
        ('from_level', big_endian_int),
        ('aux_req', big_endian_int),
    )


class GetHelperTrieProofsPacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('reqs', CountableList(HelperTrieReq)),
    )

    def req_cnt(self) -> int:
        return len(self.reqs)


class SendTxPacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('txs', CountableList(LegacyTx)),
    )

    def req_cnt(self) -> int:
        return len(self.txs)


class GetTxStatusPacket(rlp.Serializable):
    fields = (
        ('req_id', big_endian_int),
        ('hashes', CountableList(hash32)),
    )

    def req_cnt(self) -> int:
        return len(self.hashes)
