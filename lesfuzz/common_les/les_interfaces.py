from __future__ import annotations

from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class LesPeer:
    version: int
    peer_id: str = 'fuzzer'


@dataclass(frozen=True)
class LesReply:
    msg_code: int
    req_id: int
    payload: bytes


class ILesFuzzFixture(metaclass=ABCMeta):
    """Reference chain data used to bias random draws toward existing entities"""

    @property
    @abstractmethod
    def chain_len(self) -> int:
        """Number of blocks on top of genesis"""

    @abstractmethod
    def get_canonical_hash(self, block_num: int) -> Optional[bytes]:
        """Hash of the canonical block with the number, None if there is no such block"""

    @property
    @abstractmethod
    def addr_hash_list(self) -> Sequence[bytes]:
        """Keccak hashes of the addresses touched by the chain"""

    @property
    @abstractmethod
    def tx_hash_list(self) -> Sequence[bytes]:
        """Hashes of the transactions included into the chain"""

    @property
    @abstractmethod
    def cht_key_list(self) -> Sequence[bytes]:
        """Existing keys of the canonical hash trie"""

    @property
    @abstractmethod
    def bloom_key_list(self) -> Sequence[bytes]:
        """Existing keys of the bloom trie"""


class ILesMsgHandler(metaclass=ABCMeta):

    @abstractmethod
    def handle_msg(self, msg_code: int, payload: bytes, peer: LesPeer) -> Optional[LesReply]:
        """Processes an encoded request as if it was received from the peer"""
