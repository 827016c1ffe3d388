from __future__ import annotations

from enum import Enum
from typing import Sequence

from ..common_les.constants import HASH_LEN, CHT_KEY_LEN, BLOOM_TRIE_KEY_LEN, MAX_UINT64
from ..common_les.les_interfaces import ILesFuzzFixture


class CursorState(Enum):
    Active = 'active'
    Exhausted = 'exhausted'


class ByteCursor:
    """
    Turns the fuzzer input into a stream of bounded values.

    Bytes are consumed from the beginning of the input, multi-byte integers are little-endian.
    A read which crosses the end of the input is padded with zeroes and moves the cursor into the
    Exhausted state, every later read returns zeroes. No read ever raises.

    Domain draws (hashes, trie keys) first draw a selector in [0, 3 * pool_size) and then always
    read a value-width slice: the selector picks an existing fixture entity if it falls into the pool,
    otherwise the slice is returned as is.
    """

    _random_x_min_width = 2
    _random_x_huge_marker = 0xff

    def __init__(self, data: bytes, fixture: ILesFuzzFixture):
        self._data = bytes(data)
        self._offset = 0
        self._fixture = fixture
        self._state = CursorState.Active if len(self._data) > 0 else CursorState.Exhausted

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def exhausted(self) -> bool:
        return self._state == CursorState.Exhausted

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    @property
    def chain_len(self) -> int:
        return self._fixture.chain_len

    def _read(self, size: int) -> bytes:
        if size <= 0:
            return b''
        elif self._state == CursorState.Exhausted:
            return bytes(size)

        chunk = self._data[self._offset:self._offset + size]
        self._offset += len(chunk)
        if self._offset >= len(self._data):
            self._state = CursorState.Exhausted

        if len(chunk) < size:
            chunk += bytes(size - len(chunk))
        return chunk

    @staticmethod
    def _width(bound: int) -> int:
        return max(1, ((bound - 1).bit_length() + 7) // 8)

    def random_byte(self) -> int:
        return self._read(1)[0]

    def random_bool(self) -> bool:
        return (self.random_byte() & 1) == 1

    def random_int(self, bound: int) -> int:
        if bound <= 0:
            return 0
        value = int.from_bytes(self._read(self._width(bound)), 'little')
        return value % bound

    def random_x(self, bound: int) -> int:
        """
        Count-like values, at least 2 bytes wide.

        If the most significant byte of the read is 0xff, one more byte k is read and the result is
        2**64 - 1 - k, far outside of [0, bound). Otherwise the result is in [0, bound) as for random_int.
        """
        if bound <= 0:
            return 0
        width = max(self._random_x_min_width, self._width(bound))
        raw = self._read(width)
        if raw[-1] == self._random_x_huge_marker:
            return MAX_UINT64 - self.random_byte()
        return int.from_bytes(raw, 'little') % bound

    def _random_pick(self, pool: Sequence[bytes], width: int) -> bytes:
        idx = self.random_int(3 * len(pool))
        raw = self._read(width)
        if idx < len(pool):
            return pool[idx]
        return raw

    def random_block_hash(self) -> bytes:
        block_num = self.random_int(3 * self.chain_len)
        raw = self._read(HASH_LEN)
        block_hash = self._fixture.get_canonical_hash(block_num)
        if block_hash is not None:
            return block_hash
        return raw

    def random_addr_hash(self) -> bytes:
        return self._random_pick(self._fixture.addr_hash_list, HASH_LEN)

    def random_tx_hash(self) -> bytes:
        return self._random_pick(self._fixture.tx_hash_list, HASH_LEN)

    def random_cht_key(self) -> bytes:
        return self._random_pick(self._fixture.cht_key_list, CHT_KEY_LEN)

    def random_bloom_key(self) -> bytes:
        return self._random_pick(self._fixture.bloom_key_list, BLOOM_TRIE_KEY_LEN)
