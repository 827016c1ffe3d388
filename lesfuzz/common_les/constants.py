from enum import IntEnum


LES2 = 2
LES3 = 3
LES4 = 4
PROTOCOL_VERSION_LIST = (LES2, LES3, LES4)

PROTOCOL_MAX_MSG_SIZE = 10 * 1024 * 1024
SOFT_RESPONSE_LIMIT = 2 * 1024 * 1024

# Maximum number of items a single request may ask for
MAX_HEADER_FETCH = 192
MAX_BODY_FETCH = 32
MAX_RECEIPT_FETCH = 128
MAX_CODE_FETCH = 64
MAX_PROOFS_FETCH = 64
MAX_HELPER_TRIE_PROOFS_FETCH = 64
MAX_TX_SEND = 64
MAX_TX_STATUS = 256

HASH_LEN = 32
ADDRESS_LEN = 20
CHT_KEY_LEN = 8
BLOOM_TRIE_KEY_LEN = 10
MAX_UINT64 = 2 ** 64 - 1

TX_GAS = 21_000
TX_GAS_CONTRACT_CREATION = 53_000
TX_DATA_ZERO_GAS = 4
TX_DATA_NON_ZERO_GAS = 16
BLOCK_GAS_LIMIT = 100_000_000
TX_MAX_SIZE = 128 * 1024

GWEI = 10 ** 9
ETHER = 10 ** 18

HT_AUX_HEADER = 2

ZERO_HASH = b'\0' * HASH_LEN
ZERO_ADDRESS = b'\0' * ADDRESS_LEN


class LesMsgCode(IntEnum):
    GetBlockHeaders = 0x02
    BlockHeaders = 0x03
    GetBlockBodies = 0x04
    BlockBodies = 0x05
    GetReceipts = 0x06
    Receipts = 0x07
    GetCode = 0x0a
    Code = 0x0b
    GetProofsV2 = 0x0f
    ProofsV2 = 0x10
    GetHelperTrieProofs = 0x11
    HelperTrieProofs = 0x12
    SendTxV2 = 0x13
    GetTxStatus = 0x14
    TxStatus = 0x15


class HelperTrieType(IntEnum):
    CHT = 0
    BloomTrie = 1
