from __future__ import annotations

import logging
import rlp

from typing import Dict

from ..common_les.config import Config
from ..common_les.constants import PROTOCOL_VERSION_LIST
from ..common_les.errors import (
    LesUnknownMsgError, LesMsgTooLargeError, LesDecodeError, LesRequestRejectedError
)
from ..common_les.les_interfaces import ILesMsgHandler, LesPeer, LesReply
from ..fixture.chain import TestChain

from .server_requests import LES3_REQUEST_DICT, LesRequestType, ServerBackend
from .tx_pool import TxPool


LOG = logging.getLogger(__name__)


class LesServerHandler(ILesMsgHandler):
    """Server side of the LES protocol: decodes, validates and serves requests received from peers"""

    def __init__(self, config: Config, chain: TestChain, tx_pool: TxPool,
                 request_dict: Dict[int, LesRequestType] = LES3_REQUEST_DICT):
        self._config = config
        self._backend = ServerBackend(config, chain, tx_pool)
        self._request_dict = request_dict
        self._served_cnt = 0

    @property
    def served_cnt(self) -> int:
        return self._served_cnt

    def handle_msg(self, msg_code: int, payload: bytes, peer: LesPeer) -> LesReply:
        if peer.version not in PROTOCOL_VERSION_LIST:
            raise LesRequestRejectedError(f'Unsupported protocol version {peer.version}')

        if len(payload) > self._config.max_msg_size:
            raise LesMsgTooLargeError(len(payload), self._config.max_msg_size)

        req_type = self._request_dict.get(msg_code)
        if req_type is None:
            raise LesUnknownMsgError(msg_code)

        if peer.version < req_type.min_version:
            raise LesRequestRejectedError(f'{req_type.name} is not supported by les/{peer.version}')

        try:
            packet = rlp.decode(payload, req_type.packet_type)
        except rlp.exceptions.RLPException as exc:
            raise LesDecodeError(req_type.name, exc)

        req_cnt = packet.req_cnt()
        if req_cnt > req_type.max_count:
            raise LesRequestRejectedError(
                f'Request rejected: {req_type.name}, count {req_cnt} > max {req_type.max_count}'
            )

        LOG.debug(f'Serve {req_type.name} from {peer.peer_id} (les/{peer.version}): req_id {packet.req_id}, count {req_cnt}')
        reply_data = req_type.serve(self._backend, packet)
        self._served_cnt += 1

        return LesReply(
            msg_code=req_type.reply_code,
            req_id=packet.req_id,
            payload=rlp.encode([packet.req_id, reply_data])
        )
