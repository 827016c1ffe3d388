from __future__ import annotations

import logging
import rlp

from enum import IntEnum
from typing import Callable, Dict, List

from eth_keys import keys

from ..common_les.config import Config
from ..common_les.constants import (
    LesMsgCode, HelperTrieType, HT_AUX_HEADER, TX_GAS, GWEI, ZERO_ADDRESS, PROTOCOL_VERSION_LIST,
    MAX_HEADER_FETCH, MAX_BODY_FETCH, MAX_RECEIPT_FETCH, MAX_CODE_FETCH, MAX_PROOFS_FETCH,
    MAX_HELPER_TRIE_PROOFS_FETCH, MAX_TX_SEND, MAX_TX_STATUS
)
from ..common_les.errors import LesProtocolError
from ..common_les.eth_proto import LegacyTx
from ..common_les.les_interfaces import ILesFuzzFixture, ILesMsgHandler, LesPeer
from ..common_les.les_packets import (
    HashOrNumber, GetBlockHeadersData, GetBlockHeadersPacket, GetBlockBodiesPacket, CodeReq, GetCodePacket,
    GetReceiptsPacket, ProofReq, GetProofsPacket, HelperTrieReq, GetHelperTrieProofsPacket, SendTxPacket,
    GetTxStatusPacket
)
from ..common_les.utils.json_logger import logging_context
from ..common_les.utils.utils import str_enum, str_fmt_rlp
from ..fixture.chain import TestChain
from ..les_server.server_handler import LesServerHandler
from ..les_server.tx_pool import TxPool

from .byte_cursor import ByteCursor


LOG = logging.getLogger(__name__)

TX_VALUE = 10_000


class FuzzMsgKind(IntEnum):
    GetBlockHeaders = 0
    GetBlockBodies = 1
    GetCode = 2
    GetReceipts = 3
    GetProofs = 4
    GetHelperTrieProofs = 5
    SendTx = 6
    GetTxStatus = 7

    @property
    def msg_code(self) -> LesMsgCode:
        return _MSG_CODE_DICT[self]


_MSG_CODE_DICT: Dict[FuzzMsgKind, LesMsgCode] = {
    FuzzMsgKind.GetBlockHeaders: LesMsgCode.GetBlockHeaders,
    FuzzMsgKind.GetBlockBodies: LesMsgCode.GetBlockBodies,
    FuzzMsgKind.GetCode: LesMsgCode.GetCode,
    FuzzMsgKind.GetReceipts: LesMsgCode.GetReceipts,
    FuzzMsgKind.GetProofs: LesMsgCode.GetProofsV2,
    FuzzMsgKind.GetHelperTrieProofs: LesMsgCode.GetHelperTrieProofs,
    FuzzMsgKind.SendTx: LesMsgCode.SendTxV2,
    FuzzMsgKind.GetTxStatus: LesMsgCode.GetTxStatus,
}


class LesFuzzer:
    """
    Generates LES requests from the fuzzer input and feeds them to the message handler.

    Every request is encoded and dispatched as soon as it is built. Protocol level rejections
    (LesProtocolError) are the expected outcome of adversarial requests and are ignored,
    any other exception is a finding and goes up to the fuzzing engine.
    """

    def __init__(self, data: bytes, fixture: ILesFuzzFixture, handler: ILesMsgHandler,
                 bank_key: keys.PrivateKey, config: Config):
        self._data = data
        self._fixture = fixture
        self._handler = handler
        self._bank_key = bank_key
        self._config = config

        self._cursor = ByteCursor(data, fixture)
        # the next valid nonce of the bank account, each fixture block spends one
        self._nonce = len(fixture.tx_hash_list)
        self._req_id = 0
        self._dispatched_cnt = 0

        self._generator_dict: Dict[FuzzMsgKind, Callable[[], rlp.Serializable]] = {
            FuzzMsgKind.GetBlockHeaders: self._gen_get_block_headers,
            FuzzMsgKind.GetBlockBodies: self._gen_get_block_bodies,
            FuzzMsgKind.GetCode: self._gen_get_code,
            FuzzMsgKind.GetReceipts: self._gen_get_receipts,
            FuzzMsgKind.GetProofs: self._gen_get_proofs,
            FuzzMsgKind.GetHelperTrieProofs: self._gen_get_helper_trie_proofs,
            FuzzMsgKind.SendTx: self._gen_send_tx,
            FuzzMsgKind.GetTxStatus: self._gen_get_tx_status,
        }
        assert set(self._generator_dict.keys()) == set(FuzzMsgKind), 'Each message kind requires a generator'

    @property
    def cursor(self) -> ByteCursor:
        return self._cursor

    @property
    def nonce(self) -> int:
        return self._nonce

    @property
    def dispatched_cnt(self) -> int:
        return self._dispatched_cnt

    def run(self) -> int:
        if len(self._data) < self._config.min_input_len:
            return 0

        while not self._cursor.exhausted:
            kind = FuzzMsgKind(self._cursor.random_int(len(FuzzMsgKind)))
            packet = self._generator_dict[kind]()
            self._do_fuzz(kind, packet)

        return self._dispatched_cnt

    def _next_req_id(self) -> int:
        req_id = self._req_id
        self._req_id += 1
        return req_id

    def _next_nonce(self) -> int:
        nonce = self._nonce
        self._nonce += 1
        return nonce

    def _random_cnt(self, max_cnt: int) -> int:
        """List length in [0, max_cnt + 1], one past the protocol limit must be rejected by the server"""
        return self._cursor.random_int(max_cnt + 2)

    def _gen_get_block_headers(self) -> GetBlockHeadersPacket:
        cursor = self._cursor
        amount = cursor.random_x(MAX_HEADER_FETCH + 2)
        skip = cursor.random_x(10)
        reverse = cursor.random_bool()
        if cursor.random_bool():
            origin = HashOrNumber.from_hash(cursor.random_block_hash())
        else:
            origin = HashOrNumber.from_number(cursor.random_int(cursor.chain_len * 2))

        query = GetBlockHeadersData(origin=origin, amount=amount, skip=skip, reverse=reverse)
        return GetBlockHeadersPacket(req_id=self._next_req_id(), query=query)

    def _gen_get_block_bodies(self) -> GetBlockBodiesPacket:
        cursor = self._cursor
        hash_list = [cursor.random_block_hash() for _ in range(self._random_cnt(MAX_BODY_FETCH))]
        return GetBlockBodiesPacket(req_id=self._next_req_id(), hashes=hash_list)

    def _gen_get_code(self) -> GetCodePacket:
        cursor = self._cursor
        req_list: List[CodeReq] = []
        for _ in range(self._random_cnt(MAX_CODE_FETCH)):
            bhash = cursor.random_block_hash()
            req_list.append(CodeReq(bhash=bhash, acc_key=cursor.random_addr_hash()))
        return GetCodePacket(req_id=self._next_req_id(), reqs=req_list)

    def _gen_get_receipts(self) -> GetReceiptsPacket:
        cursor = self._cursor
        hash_list = [cursor.random_block_hash() for _ in range(self._random_cnt(MAX_RECEIPT_FETCH))]
        return GetReceiptsPacket(req_id=self._next_req_id(), hashes=hash_list)

    def _gen_proof_req(self) -> ProofReq:
        cursor = self._cursor
        if cursor.random_bool():
            # storage proof
            bhash = cursor.random_block_hash()
            acc_key = cursor.random_addr_hash()
            key = cursor.random_addr_hash()
        else:
            # account proof
            bhash = cursor.random_block_hash()
            acc_key = b''
            key = cursor.random_addr_hash()
        return ProofReq(bhash=bhash, acc_key=acc_key, key=key, from_level=cursor.random_x(3))

    def _gen_get_proofs(self) -> GetProofsPacket:
        req_list = [self._gen_proof_req() for _ in range(self._random_cnt(MAX_PROOFS_FETCH))]
        return GetProofsPacket(req_id=self._next_req_id(), reqs=req_list)

    def _gen_helper_trie_req(self) -> HelperTrieReq:
        cursor = self._cursor
        selector = cursor.random_int(3)
        if selector == HelperTrieType.CHT:
            trie_type, aux_req = HelperTrieType.CHT, HT_AUX_HEADER
            trie_idx = cursor.random_x(3)
            key = cursor.random_cht_key()
        elif selector == HelperTrieType.BloomTrie:
            trie_type, aux_req = HelperTrieType.BloomTrie, 0
            trie_idx = cursor.random_x(3)
            key = cursor.random_bloom_key()
        else:
            # unknown trie: CHT-shaped key the server has to ignore
            trie_type, aux_req = 2, 0
            trie_idx = cursor.random_x(3)
            key = cursor.random_cht_key()

        return HelperTrieReq(
            type=int(trie_type),
            trie_idx=trie_idx,
            key=key,
            from_level=cursor.random_x(3),
            aux_req=aux_req
        )

    def _gen_get_helper_trie_proofs(self) -> GetHelperTrieProofsPacket:
        req_list = [
            self._gen_helper_trie_req()
            for _ in range(self._random_cnt(MAX_HELPER_TRIE_PROOFS_FETCH))
        ]
        return GetHelperTrieProofsPacket(req_id=self._next_req_id(), reqs=req_list)

    def _gen_tx(self) -> LegacyTx:
        cursor = self._cursor
        if cursor.random_bool():
            nonce = cursor.random_byte()
        else:
            nonce = self._next_nonce()
        gas_price = GWEI * cursor.random_byte()
        return LegacyTx.sign(self._bank_key, nonce, gas_price, TX_GAS, ZERO_ADDRESS, TX_VALUE)

    def _gen_send_tx(self) -> SendTxPacket:
        tx_list = [self._gen_tx() for _ in range(self._random_cnt(MAX_TX_SEND))]
        return SendTxPacket(req_id=self._next_req_id(), txs=tx_list)

    def _gen_get_tx_status(self) -> GetTxStatusPacket:
        cursor = self._cursor
        hash_list = [cursor.random_tx_hash() for _ in range(self._random_cnt(MAX_TX_STATUS))]
        return GetTxStatusPacket(req_id=self._next_req_id(), hashes=hash_list)

    def _do_fuzz(self, kind: FuzzMsgKind, packet: rlp.Serializable) -> None:
        payload = rlp.encode(packet)
        version = PROTOCOL_VERSION_LIST[self._cursor.random_int(len(PROTOCOL_VERSION_LIST))]
        peer = LesPeer(version=version)

        with logging_context(les_msg=str_enum(kind), req_id=packet.req_id):
            if LOG.isEnabledFor(logging.DEBUG):
                LOG.debug(f'Dispatch {str_fmt_rlp(packet)}, {len(payload)} bytes, les/{version}')
            try:
                self._handler.handle_msg(kind.msg_code, payload, peer)
            except LesProtocolError as exc:
                LOG.debug(f'Request rejected: {exc.get_error()}')
            self._dispatched_cnt += 1


def fuzz_one_input(data: bytes, chain: TestChain, bank_key: keys.PrivateKey, config: Config) -> int:
    """Processes one fuzzer input against a fresh server, returns the number of dispatched requests"""
    tx_pool = TxPool(config, chain)
    handler = LesServerHandler(config, chain, tx_pool)
    return LesFuzzer(data, chain, handler, bank_key, config).run()
