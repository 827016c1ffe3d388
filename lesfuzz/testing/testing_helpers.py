from __future__ import annotations

import functools
import rlp

from dataclasses import dataclass
from typing import List, Optional, Sequence

from eth_keys import keys
from eth_utils import keccak

from ..common_les.config import Config
from ..common_les.les_interfaces import ILesFuzzFixture, ILesMsgHandler, LesPeer, LesReply
from ..fixture.chain import TestChain
from ..les_server.server_requests import LES3_REQUEST_DICT


TEST_CHAIN_LEN = 16

bank_key = keys.PrivateKey(bytes.fromhex('886d5b4ce9465473701bf394b1b0b217548c57576436864fcbc1f554033a0680'))


class FakeConfig(Config):
    def __init__(self, min_input_len: int = 100, tx_pool_capacity: int = 4096, max_msg_size: Optional[int] = None):
        super().__init__()
        self._fake_min_input_len = min_input_len
        self._fake_tx_pool_capacity = tx_pool_capacity
        self._fake_max_msg_size = max_msg_size

    @property
    def min_input_len(self) -> int:
        return self._fake_min_input_len

    @property
    def tx_pool_capacity(self) -> int:
        return self._fake_tx_pool_capacity

    @property
    def tx_pool_min_gas_price(self) -> int:
        return 10 ** 9

    @property
    def max_msg_size(self) -> int:
        if self._fake_max_msg_size is None:
            return super().max_msg_size
        return self._fake_max_msg_size


@functools.lru_cache(maxsize=None)
def get_test_chain(chain_len: int = TEST_CHAIN_LEN) -> TestChain:
    return TestChain(bank_key, chain_len)


class FakeFixture(ILesFuzzFixture):
    """Fixture with predictable pools, no signing involved"""

    def __init__(self, chain_len: int = TEST_CHAIN_LEN):
        self._chain_len = chain_len
        self._hash_list = [keccak(b'block' + i.to_bytes(8, 'big')) for i in range(chain_len + 1)]
        self._addr_hash_list = [keccak(b'addr' + i.to_bytes(8, 'big')) for i in range(chain_len)]
        self._tx_hash_list = [keccak(b'tx' + i.to_bytes(8, 'big')) for i in range(chain_len)]
        self._cht_key_list = [(i + 1).to_bytes(8, 'big') for i in range(chain_len)]
        self._bloom_key_list = [b'\0\0' + (i + 1).to_bytes(8, 'big') for i in range(chain_len)]

    @property
    def chain_len(self) -> int:
        return self._chain_len

    def get_canonical_hash(self, block_num: int) -> Optional[bytes]:
        if 0 <= block_num < len(self._hash_list):
            return self._hash_list[block_num]
        return None

    @property
    def addr_hash_list(self) -> Sequence[bytes]:
        return self._addr_hash_list

    @property
    def tx_hash_list(self) -> Sequence[bytes]:
        return self._tx_hash_list

    @property
    def cht_key_list(self) -> Sequence[bytes]:
        return self._cht_key_list

    @property
    def bloom_key_list(self) -> Sequence[bytes]:
        return self._bloom_key_list


@dataclass(frozen=True)
class DispatchRecord:
    msg_code: int
    payload: bytes
    version: int

    def decode(self) -> rlp.Serializable:
        return rlp.decode(self.payload, LES3_REQUEST_DICT[self.msg_code].packet_type)


class RecordingHandler(ILesMsgHandler):
    def __init__(self, error: Optional[BaseException] = None):
        self._error = error
        self.record_list: List[DispatchRecord] = []

    def handle_msg(self, msg_code: int, payload: bytes, peer: LesPeer) -> Optional[LesReply]:
        self.record_list.append(DispatchRecord(msg_code, payload, peer.version))
        if self._error is not None:
            raise self._error
        return None


def gen_fuzz_input(seed: bytes, size: int) -> bytes:
    data = b''
    value = seed
    while len(data) < size:
        value = keccak(value)
        data += value
    return data[:size]
