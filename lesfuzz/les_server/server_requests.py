from __future__ import annotations

import logging
import rlp

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from ..common_les.config import Config
from ..common_les.constants import (
    LesMsgCode, LES2, HT_AUX_HEADER, HelperTrieType, CHT_KEY_LEN, MAX_UINT64,
    MAX_HEADER_FETCH, MAX_BODY_FETCH, MAX_RECEIPT_FETCH, MAX_CODE_FETCH, MAX_PROOFS_FETCH,
    MAX_HELPER_TRIE_PROOFS_FETCH, MAX_TX_SEND, MAX_TX_STATUS
)
from ..common_les.errors import TxPoolError
from ..common_les.les_packets import (
    GetBlockHeadersPacket, GetBlockBodiesPacket, GetCodePacket, GetReceiptsPacket, GetProofsPacket,
    GetHelperTrieProofsPacket, SendTxPacket, GetTxStatusPacket, ProofReq
)
from ..fixture.blocks import BlockHeader
from ..fixture.chain import TestChain

from .tx_pool import TxPool, TxStatusInfo, TxStatusCode


LOG = logging.getLogger(__name__)


class ServerBackend:
    """Everything a request needs to be served"""

    def __init__(self, config: Config, chain: TestChain, tx_pool: TxPool):
        self.config = config
        self.chain = chain
        self.tx_pool = tx_pool


class ResponseBuilder:
    """Collects reply items until the soft response limit is reached"""

    def __init__(self, size_limit: int):
        self._size_limit = size_limit
        self._size = 0
        self._item_list: List[Any] = []

    @property
    def is_full(self) -> bool:
        return self._size >= self._size_limit

    def add(self, item: Any) -> None:
        self._size += len(rlp.encode(item))
        self._item_list.append(item)

    @property
    def item_list(self) -> List[Any]:
        return self._item_list


@dataclass(frozen=True)
class LesRequestType:
    name: str
    max_count: int
    packet_type: Type[rlp.Serializable]
    reply_code: LesMsgCode
    serve: Callable[[ServerBackend, Any], List[Any]]
    min_version: int = LES2


def _serve_get_block_headers(backend: ServerBackend, packet: GetBlockHeadersPacket) -> List[Any]:
    query = packet.query
    chain = backend.chain

    if query.origin.is_hash:
        header: Optional[BlockHeader] = chain.get_header_by_hash(query.origin.hash)
    else:
        header = chain.get_header_by_number(query.origin.number)

    builder = ResponseBuilder(backend.config.soft_response_limit)
    while (header is not None) and (len(builder.item_list) < query.amount) and (not builder.is_full):
        builder.add(header)

        step = query.skip + 1
        if query.reverse:
            if header.number < step:
                break
            next_num = header.number - step
        else:
            next_num = header.number + step
            if (query.skip >= MAX_UINT64) or (next_num > MAX_UINT64):
                LOG.debug(f'GetBlockHeaders skip overflow attack: skip {query.skip}, number {header.number}')
                break

        header = chain.get_header_by_number(next_num)
    return builder.item_list


def _serve_get_block_bodies(backend: ServerBackend, packet: GetBlockBodiesPacket) -> List[Any]:
    builder = ResponseBuilder(backend.config.soft_response_limit)
    for block_hash in packet.hashes:
        if builder.is_full:
            break
        body = backend.chain.get_body(block_hash)
        if body is None:
            continue
        builder.add(body)
    return builder.item_list


def _serve_get_receipts(backend: ServerBackend, packet: GetReceiptsPacket) -> List[Any]:
    builder = ResponseBuilder(backend.config.soft_response_limit)
    for block_hash in packet.hashes:
        if builder.is_full:
            break
        receipt_list = backend.chain.get_receipt_list(block_hash)
        if receipt_list is None:
            continue
        builder.add(list(receipt_list))
    return builder.item_list


def _serve_get_code(backend: ServerBackend, packet: GetCodePacket) -> List[Any]:
    builder = ResponseBuilder(backend.config.soft_response_limit)
    for req in packet.reqs:
        if builder.is_full:
            break
        if backend.chain.get_header_by_hash(req.bhash) is None:
            LOG.debug(f'Failed to retrieve associated header for code: {req.bhash.hex()}')
            continue
        account = backend.chain.get_account_by_hash(req.acc_key)
        builder.add(b'' if account is None else account.code)
    return builder.item_list


def _flat_proof(key: bytes, value: Optional[bytes], from_level: int) -> List[bytes]:
    """Proof of presence [key, value] or absence [key] with the first from_level nodes dropped"""
    node_list = [key] if value is None else [key, value]
    return node_list[from_level:]


def _serve_get_proofs(backend: ServerBackend, packet: GetProofsPacket) -> List[Any]:
    builder = ResponseBuilder(backend.config.soft_response_limit)
    req: ProofReq
    for req in packet.reqs:
        if builder.is_full:
            break
        if backend.chain.get_header_by_hash(req.bhash) is None:
            LOG.debug(f'Failed to retrieve header for proof: {req.bhash.hex()}')
            continue

        if req.is_storage_proof:
            account = backend.chain.get_account_by_hash(req.acc_key)
            if account is None:
                LOG.debug(f'Failed to retrieve account for storage proof: {req.acc_key.hex()}')
                continue
            value = account.storage.get(req.key)
        else:
            account = backend.chain.get_account_by_hash(req.key)
            value = None if account is None else rlp.encode(account.to_record())

        builder.add(_flat_proof(req.key, value, req.from_level))
    return builder.item_list


def _serve_get_helper_trie_proofs(backend: ServerBackend, packet: GetHelperTrieProofsPacket) -> List[Any]:
    builder = ResponseBuilder(backend.config.soft_response_limit)
    aux_data_list: List[bytes] = []
    for req in packet.reqs:
        if builder.is_full:
            break
        trie = backend.chain.get_helper_trie(req.type, req.trie_idx)
        if trie is None:
            LOG.debug(f'Unknown helper trie type {req.type}, index {req.trie_idx}')
            continue

        builder.add(_flat_proof(req.key, trie.get(req.key), req.from_level))

        if (req.aux_req == HT_AUX_HEADER) and (req.type == HelperTrieType.CHT) and (len(req.key) == CHT_KEY_LEN):
            block_num = int.from_bytes(req.key, 'big')
            header = backend.chain.get_header_by_number(block_num)
            if header is not None:
                aux_data_list.append(rlp.encode(header))

    return [builder.item_list, aux_data_list]


def _serve_send_tx(backend: ServerBackend, packet: SendTxPacket) -> List[Any]:
    status_list: List[Any] = []
    for tx in packet.txs:
        tx_hash = tx.hash_signed()
        try:
            status = backend.tx_pool.add_tx(tx)
            status_info = TxStatusInfo(status)
        except TxPoolError as exc:
            LOG.debug(f'Failed to add tx {tx_hash.hex()}: {str(exc)}')
            status_info = backend.tx_pool.get_tx_status(tx_hash)
            if status_info.status == TxStatusCode.Unknown:
                status_info = TxStatusInfo(TxStatusCode.Unknown, error=str(exc))
        status_list.append(status_info.to_rlp())
    return status_list


def _serve_get_tx_status(backend: ServerBackend, packet: GetTxStatusPacket) -> List[Any]:
    return [backend.tx_pool.get_tx_status(tx_hash).to_rlp() for tx_hash in packet.hashes]


LES3_REQUEST_DICT: Dict[int, LesRequestType] = {
    LesMsgCode.GetBlockHeaders: LesRequestType(
        name='block header request',
        max_count=MAX_HEADER_FETCH,
        packet_type=GetBlockHeadersPacket,
        reply_code=LesMsgCode.BlockHeaders,
        serve=_serve_get_block_headers
    ),
    LesMsgCode.GetBlockBodies: LesRequestType(
        name='block bodies request',
        max_count=MAX_BODY_FETCH,
        packet_type=GetBlockBodiesPacket,
        reply_code=LesMsgCode.BlockBodies,
        serve=_serve_get_block_bodies
    ),
    LesMsgCode.GetReceipts: LesRequestType(
        name='receipts request',
        max_count=MAX_RECEIPT_FETCH,
        packet_type=GetReceiptsPacket,
        reply_code=LesMsgCode.Receipts,
        serve=_serve_get_receipts
    ),
    LesMsgCode.GetCode: LesRequestType(
        name='code request',
        max_count=MAX_CODE_FETCH,
        packet_type=GetCodePacket,
        reply_code=LesMsgCode.Code,
        serve=_serve_get_code
    ),
    LesMsgCode.GetProofsV2: LesRequestType(
        name='les/2 proofs request',
        max_count=MAX_PROOFS_FETCH,
        packet_type=GetProofsPacket,
        reply_code=LesMsgCode.ProofsV2,
        serve=_serve_get_proofs
    ),
    LesMsgCode.GetHelperTrieProofs: LesRequestType(
        name='helper trie proof request',
        max_count=MAX_HELPER_TRIE_PROOFS_FETCH,
        packet_type=GetHelperTrieProofsPacket,
        reply_code=LesMsgCode.HelperTrieProofs,
        serve=_serve_get_helper_trie_proofs
    ),
    LesMsgCode.SendTxV2: LesRequestType(
        name='new transaction',
        max_count=MAX_TX_SEND,
        packet_type=SendTxPacket,
        reply_code=LesMsgCode.TxStatus,
        serve=_serve_send_tx
    ),
    LesMsgCode.GetTxStatus: LesRequestType(
        name='transaction status query request',
        max_count=MAX_TX_STATUS,
        packet_type=GetTxStatusPacket,
        reply_code=LesMsgCode.TxStatus,
        serve=_serve_get_tx_status
    ),
}
