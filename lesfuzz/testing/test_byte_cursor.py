import unittest

from ..common_les.constants import MAX_UINT64
from ..fuzzer.byte_cursor import ByteCursor, CursorState

from .testing_helpers import FakeFixture, TEST_CHAIN_LEN


class TestByteCursor(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.fixture = FakeFixture()

    def _cursor(self, data: bytes) -> ByteCursor:
        return ByteCursor(data, self.fixture)

    def test_random_byte(self):
        cursor = self._cursor(bytes([7, 255, 0]))
        self.assertEqual(cursor.random_byte(), 7)
        self.assertEqual(cursor.random_byte(), 255)
        self.assertFalse(cursor.exhausted)
        self.assertEqual(cursor.random_byte(), 0)
        self.assertTrue(cursor.exhausted)
        self.assertEqual(cursor.offset, 3)

    def test_empty_input_is_exhausted(self):
        cursor = self._cursor(b'')
        self.assertTrue(cursor.exhausted)
        self.assertEqual(cursor.state, CursorState.Exhausted)
        self.assertEqual(cursor.random_byte(), 0)
        self.assertEqual(cursor.random_int(1000), 0)
        self.assertEqual(cursor.offset, 0)

    def test_random_bool_uses_low_bit(self):
        cursor = self._cursor(bytes([0x03, 0x02, 0xff, 0x00]))
        self.assertTrue(cursor.random_bool())
        self.assertFalse(cursor.random_bool())
        self.assertTrue(cursor.random_bool())
        self.assertFalse(cursor.random_bool())

    def test_random_int_zero_bound(self):
        cursor = self._cursor(bytes([9, 9]))
        self.assertEqual(cursor.random_int(0), 0)
        self.assertEqual(cursor.random_x(0), 0)
        self.assertEqual(cursor.offset, 0)
        self.assertEqual(cursor.state, CursorState.Active)

    def test_random_int_width(self):
        cursor = self._cursor(bytes([200, 0x01, 0x02, 0xff, 0xff, 0x10]))
        self.assertEqual(cursor.random_int(256), 200)
        self.assertEqual(cursor.offset, 1)

        # 2 bytes, little-endian
        self.assertEqual(cursor.random_int(257), 0x0201 % 257)
        self.assertEqual(cursor.offset, 3)

        self.assertEqual(cursor.random_int(65536), 0xffff)
        self.assertEqual(cursor.offset, 5)

    def test_random_int_in_range(self):
        data = bytes(range(256)) * 2
        cursor = self._cursor(data)
        while not cursor.exhausted:
            for bound in (1, 3, 8, 193, 512):
                value = cursor.random_int(bound)
                self.assertGreaterEqual(value, 0)
                self.assertLess(value, bound)

    def test_random_x_is_two_bytes_wide(self):
        cursor = self._cursor(bytes([5, 0, 0x34, 0x12]))
        self.assertEqual(cursor.random_x(3), 2)
        self.assertEqual(cursor.offset, 2)
        self.assertEqual(cursor.random_x(193), 0x1234 % 193)
        self.assertTrue(cursor.exhausted)

    def test_random_x_huge_value(self):
        cursor = self._cursor(bytes([0x05, 0xff, 0x07, 0x00, 0xff, 0x00, 0xff, 0x01]))
        self.assertEqual(cursor.random_x(10), MAX_UINT64 - 7)
        self.assertEqual(cursor.offset, 3)

        # k = 0 gives the top of the uint64 range
        self.assertEqual(cursor.random_x(3), MAX_UINT64)
        self.assertEqual(cursor.offset, 6)

        # the marker is the most significant byte, not any byte
        self.assertEqual(cursor.random_x(1000), 0x01ff % 1000)
        self.assertTrue(cursor.exhausted)

        cursor = self._cursor(bytes([0x00, 0x00, 0xff, 0xff]))
        self.assertEqual(cursor.random_x(2 ** 24), MAX_UINT64 - 0xff)
        self.assertEqual(cursor.offset, 4)

    def test_short_read_pads_with_zeroes(self):
        cursor = self._cursor(bytes([0x01]))
        self.assertEqual(cursor.random_int(1000), 1)
        self.assertTrue(cursor.exhausted)
        self.assertEqual(cursor.offset, 1)
        self.assertEqual(cursor.remaining, 0)

    def test_exhaustion_is_monotonic(self):
        cursor = self._cursor(bytes([1, 2, 3]))
        cursor.random_x(10)
        self.assertFalse(cursor.exhausted)
        cursor.random_x(10)
        self.assertTrue(cursor.exhausted)

        for _ in range(10):
            self.assertEqual(cursor.random_byte(), 0)
            self.assertFalse(cursor.random_bool())
            self.assertEqual(cursor.random_block_hash(), self.fixture.get_canonical_hash(0))
            self.assertTrue(cursor.exhausted)
        self.assertEqual(cursor.offset, 3)

    def test_random_block_hash_from_chain(self):
        # 3 * 16 blocks fit into 1 selector byte
        data = bytes([5]) + b'\xaa' * 32 + bytes([TEST_CHAIN_LEN + 1]) + b'\xbb' * 32 + b'\0'
        cursor = self._cursor(data)

        self.assertEqual(cursor.random_block_hash(), self.fixture.get_canonical_hash(5))
        self.assertEqual(cursor.offset, 33)

        self.assertEqual(cursor.random_block_hash(), b'\xbb' * 32)
        self.assertEqual(cursor.offset, 66)

    def test_random_block_hash_head(self):
        data = bytes([TEST_CHAIN_LEN]) + b'\xaa' * 32 + b'\0'
        cursor = self._cursor(data)
        self.assertEqual(cursor.random_block_hash(), self.fixture.get_canonical_hash(TEST_CHAIN_LEN))

    def test_random_domain_keys(self):
        data = (
            bytes([3]) + b'\x11' * 32 +
            bytes([47]) + b'\x22' * 32 +
            bytes([0]) + b'\x33' * 8 +
            bytes([40]) + b'\x44' * 10 +
            bytes([2]) + b'\x55' * 32 +
            b'\0'
        )
        cursor = self._cursor(data)
        self.assertEqual(cursor.random_addr_hash(), self.fixture.addr_hash_list[3])
        self.assertEqual(cursor.random_addr_hash(), b'\x22' * 32)
        self.assertEqual(cursor.random_cht_key(), self.fixture.cht_key_list[0])
        self.assertEqual(cursor.random_bloom_key(), b'\x44' * 10)
        self.assertEqual(cursor.random_tx_hash(), self.fixture.tx_hash_list[2])
        self.assertFalse(cursor.exhausted)

    def test_determinism(self):
        data = bytes(range(256))
        value_list = []
        for _ in range(2):
            cursor = self._cursor(data)
            values = []
            while not cursor.exhausted:
                values.append((cursor.random_int(8), cursor.random_x(193), cursor.random_tx_hash()))
            value_list.append(values)
        self.assertEqual(value_list[0], value_list[1])


if __name__ == '__main__':
    unittest.main()
