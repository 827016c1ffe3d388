import unittest

from eth_utils import keccak

from ..common_les.constants import ZERO_HASH, TX_GAS
from ..common_les.eth_proto import contract_address
from ..fixture.chain import TEST_CONTRACT_CODE, CHT_VALUE, BLOOM_TRIE_VALUE, BANK_FUNDS, TRANSFER_VALUE

from .testing_helpers import get_test_chain, bank_key, TEST_CHAIN_LEN


class TestTestChain(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.chain = get_test_chain()

    def test_pools(self):
        self.assertEqual(self.chain.chain_len, TEST_CHAIN_LEN)
        self.assertEqual(self.chain.head_number, TEST_CHAIN_LEN)
        self.assertEqual(self.chain.bank_address, bank_key.public_key.to_canonical_address())
        for pool in (self.chain.addr_hash_list, self.chain.tx_hash_list, self.chain.cht_key_list,
                     self.chain.bloom_key_list):
            self.assertEqual(len(pool), TEST_CHAIN_LEN)

        self.assertEqual(self.chain.cht_key_list[0], (1).to_bytes(8, 'big'))
        self.assertEqual(self.chain.bloom_key_list[0], b'\0\0' + (1).to_bytes(8, 'big'))

    def test_header_links(self):
        self.assertIsNone(self.chain.get_canonical_hash(-1))
        self.assertIsNone(self.chain.get_canonical_hash(TEST_CHAIN_LEN + 1))
        self.assertEqual(self.chain.get_header_by_number(0).parent_hash, ZERO_HASH)

        for num in range(1, TEST_CHAIN_LEN + 1):
            header = self.chain.get_header_by_number(num)
            self.assertEqual(header.number, num)
            self.assertEqual(header.parent_hash, self.chain.get_canonical_hash(num - 1))
            self.assertEqual(header.block_hash(), self.chain.get_canonical_hash(num))
            self.assertIs(self.chain.get_header_by_hash(header.block_hash()), header)

    def test_transactions(self):
        for idx, tx_hash in enumerate(self.chain.tx_hash_list):
            lookup = self.chain.get_tx_lookup(tx_hash)
            self.assertEqual(lookup.block_index, idx + 1)
            self.assertEqual(lookup.index, 0)

            tx = self.chain.get_body(lookup.block_hash).txs[0]
            self.assertEqual(tx.hash_signed(), tx_hash)
            self.assertEqual(tx.nonce, idx)
            self.assertEqual(tx.sender(), self.chain.bank_address)
            self.assertEqual(tx.toAddress == b'', idx % 4 == 0)

            receipt = self.chain.get_receipt_list(lookup.block_hash)[0]
            self.assertEqual(receipt.status, 1)

    def test_accounts(self):
        contract = contract_address(self.chain.bank_address, 0)
        self.assertEqual(self.chain.addr_hash_list[0], keccak(contract))

        account = self.chain.get_account_by_hash(self.chain.addr_hash_list[0])
        self.assertEqual(account.code, TEST_CONTRACT_CODE)
        self.assertIn(keccak(ZERO_HASH), account.storage)

        account = self.chain.get_account((1).to_bytes(20, 'big'))
        self.assertEqual(account.balance, TRANSFER_VALUE)
        self.assertEqual(account.code, b'')

        bank = self.chain.get_account(self.chain.bank_address)
        transfer_cnt = TEST_CHAIN_LEN - (TEST_CHAIN_LEN + 3) // 4
        self.assertEqual(bank.nonce, TEST_CHAIN_LEN)
        self.assertEqual(bank.balance, BANK_FUNDS - transfer_cnt * (TRANSFER_VALUE + TX_GAS * 10 ** 9))

    def test_helper_tries(self):
        cht = self.chain.get_helper_trie(0, 0)
        self.assertEqual(cht[self.chain.cht_key_list[3]], CHT_VALUE)
        self.assertIs(self.chain.get_helper_trie(0, 5), cht)

        bloom_trie = self.chain.get_helper_trie(1, 0)
        self.assertEqual(bloom_trie[self.chain.bloom_key_list[3]], BLOOM_TRIE_VALUE)
        self.assertIsNone(self.chain.get_helper_trie(2, 0))

    def test_state_roots_change(self):
        root_set = {self.chain.get_header_by_number(num).state_root for num in range(TEST_CHAIN_LEN + 1)}
        self.assertEqual(len(root_set), TEST_CHAIN_LEN + 1)


if __name__ == '__main__':
    unittest.main()
