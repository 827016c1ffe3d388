from __future__ import annotations

import logging
import rlp

from typing import Dict, List, Optional, Sequence

from eth_keys import keys
from eth_utils import keccak

from ..common_les.constants import (
    HelperTrieType, TX_GAS, GWEI, ETHER, BLOCK_GAS_LIMIT, ZERO_HASH, ZERO_ADDRESS, ADDRESS_LEN
)
from ..common_les.eth_proto import LegacyTx, contract_address
from ..common_les.les_interfaces import ILesFuzzFixture

from .blocks import BlockHeader, BlockBody, Receipt, TxLookupEntry, Account


LOG = logging.getLogger(__name__)


BANK_FUNDS = 1_000_000 * ETHER
BLOCK_PERIOD_SEC = 10
TRANSFER_VALUE = 10_000
CONTRACT_GAS_LIMIT = 200_000

TEST_CONTRACT_CODE = bytes.fromhex(
    '606060405260cc8060106000396000f360606040526000357c01000000000000000000000000000000000000000000000000000000'
    '009004806360cd2685146041578063c16431b914606b57603f565b005b6055600480803590602001909190505060a9565b60405180'
    '82815260200191505060405180910390f35b60886004808035906020019091908035906020019091905050608a565b005b80600060'
    '005083606481101560025790900160005b50819055505b5050565b6000600060005082606481101560025790900160005b50549050'
    '60c7565b91905056'
)

CHT_VALUE = b'\x01\x0f'
BLOOM_TRIE_VALUE = b'\x02\x0e'


class TestChain(ILesFuzzFixture):
    """
    In-memory chain: genesis plus chain_len blocks with one bank transaction each.

    Every 4th transaction deploys the test contract, the rest send a small value to address(i).
    Canonical hash trie maps <8-byte big-endian block number> to a fixed value, bloom trie
    maps <2-byte bit index><8-byte big-endian block number> to a fixed value.
    """

    __test__ = False

    def __init__(self, bank_key: keys.PrivateKey, chain_len: int):
        assert chain_len >= 0

        self._bank_key = bank_key
        self._bank_address = bank_key.public_key.to_canonical_address()
        self._chain_len = chain_len

        self._header_list: List[BlockHeader] = []
        self._hash_list: List[bytes] = []
        self._block_num_dict: Dict[bytes, int] = {}
        self._body_dict: Dict[bytes, BlockBody] = {}
        self._receipt_dict: Dict[bytes, List[Receipt]] = {}
        self._tx_lookup_dict: Dict[bytes, TxLookupEntry] = {}

        self._account_dict: Dict[bytes, Account] = {}
        self._addr_hash_dict: Dict[bytes, Account] = {}

        self._addr_hash_list: List[bytes] = []
        self._tx_hash_list: List[bytes] = []

        self._cht: Dict[bytes, bytes] = {}
        self._bloom_trie: Dict[bytes, bytes] = {}
        self._cht_key_list: List[bytes] = []
        self._bloom_key_list: List[bytes] = []

        self._build()

    def _get_or_create_account(self, address: bytes) -> Account:
        account = self._account_dict.get(address)
        if account is None:
            account = Account(address)
            self._account_dict[address] = account
            self._addr_hash_dict[account.addr_hash] = account
        return account

    def _add_block(self, tx_list: List[LegacyTx], receipt_list: List[Receipt], changed_list: List[Account]) -> None:
        number = len(self._header_list)
        if number == 0:
            parent_hash = ZERO_HASH
            parent_state_root = ZERO_HASH
        else:
            parent_header = self._header_list[-1]
            parent_hash = self._hash_list[-1]
            parent_state_root = parent_header.state_root

        # incremental commitment to the changed accounts, not a real state trie
        state_root = keccak(parent_state_root + rlp.encode([
            [account.addr_hash, account.to_record()]
            for account in changed_list
        ]))

        header = BlockHeader(
            parent_hash=parent_hash,
            coinbase=ZERO_ADDRESS,
            state_root=state_root,
            tx_root=keccak(rlp.encode(tx_list)),
            receipt_root=keccak(rlp.encode(receipt_list)),
            number=number,
            gas_limit=BLOCK_GAS_LIMIT,
            gas_used=(receipt_list[-1].cumulative_gas_used if receipt_list else 0),
            timestamp=number * BLOCK_PERIOD_SEC,
            extra_data=b''
        )
        block_hash = header.block_hash()

        self._header_list.append(header)
        self._hash_list.append(block_hash)
        self._block_num_dict[block_hash] = number
        self._body_dict[block_hash] = BlockBody(tx_list, [])
        self._receipt_dict[block_hash] = receipt_list

        for idx, tx in enumerate(tx_list):
            self._tx_lookup_dict[tx.hash_signed()] = TxLookupEntry(block_hash, number, idx)

    def _build(self) -> None:
        bank = self._get_or_create_account(self._bank_address)
        bank.balance = BANK_FUNDS
        self._add_block([], [], [bank])

        for i in range(self._chain_len):
            nonce = i
            if i % 4 == 0:
                tx = LegacyTx.sign(self._bank_key, nonce, 0, CONTRACT_GAS_LIMIT, b'', 0, TEST_CONTRACT_CODE)
                address = contract_address(self._bank_address, nonce)
                account = self._get_or_create_account(address)
                account.code = TEST_CONTRACT_CODE
                account.storage[keccak(ZERO_HASH)] = rlp.encode(nonce)
                receipt = Receipt(1, tx.intrinsic_gas(), address, [])
            else:
                address = i.to_bytes(ADDRESS_LEN, 'big')
                tx = LegacyTx.sign(self._bank_key, nonce, GWEI, TX_GAS, address, TRANSFER_VALUE)
                account = self._get_or_create_account(address)
                account.balance += TRANSFER_VALUE
                bank.balance -= tx.cost()
                receipt = Receipt(1, TX_GAS, b'', [])

            bank.nonce += 1
            self._addr_hash_list.append(keccak(address))
            self._tx_hash_list.append(tx.hash_signed())
            self._add_block([tx], [receipt], [bank, account])

            # Trie keys address blocks starting from 1
            cht_key = (i + 1).to_bytes(8, 'big')
            self._cht[cht_key] = CHT_VALUE
            self._cht_key_list.append(cht_key)

            bloom_key = b'\0\0' + cht_key
            self._bloom_trie[bloom_key] = BLOOM_TRIE_VALUE
            self._bloom_key_list.append(bloom_key)

        LOG.debug(f'Built test chain: {self._chain_len} blocks, head {self._hash_list[-1].hex()}')

    @property
    def chain_len(self) -> int:
        return self._chain_len

    @property
    def head_number(self) -> int:
        return len(self._header_list) - 1

    @property
    def bank_address(self) -> bytes:
        return self._bank_address

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

    def get_canonical_hash(self, block_num: int) -> Optional[bytes]:
        if 0 <= block_num < len(self._hash_list):
            return self._hash_list[block_num]
        return None

    def get_header_by_number(self, block_num: int) -> Optional[BlockHeader]:
        if 0 <= block_num < len(self._header_list):
            return self._header_list[block_num]
        return None

    def get_header_by_hash(self, block_hash: bytes) -> Optional[BlockHeader]:
        block_num = self._block_num_dict.get(block_hash)
        if block_num is None:
            return None
        return self._header_list[block_num]

    def get_body(self, block_hash: bytes) -> Optional[BlockBody]:
        return self._body_dict.get(block_hash)

    def get_receipt_list(self, block_hash: bytes) -> Optional[List[Receipt]]:
        return self._receipt_dict.get(block_hash)

    def get_tx_lookup(self, tx_hash: bytes) -> Optional[TxLookupEntry]:
        return self._tx_lookup_dict.get(tx_hash)

    def get_account(self, address: bytes) -> Optional[Account]:
        return self._account_dict.get(address)

    def get_account_by_hash(self, addr_hash: bytes) -> Optional[Account]:
        return self._addr_hash_dict.get(addr_hash)

    def get_helper_trie(self, trie_type: int, trie_idx: int) -> Optional[Dict[bytes, bytes]]:
        # the chain is shorter than one section, so every index points to the same trie
        if trie_type == HelperTrieType.CHT:
            return self._cht
        elif trie_type == HelperTrieType.BloomTrie:
            return self._bloom_trie
        return None
