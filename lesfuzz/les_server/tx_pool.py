from __future__ import annotations

import logging
import rlp

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional

from eth_keys.exceptions import BadSignature, ValidationError

from ..common_les.config import Config
from ..common_les.constants import BLOCK_GAS_LIMIT, TX_MAX_SIZE
from ..common_les.eth_proto import LegacyTx, InvalidLegacyTx
from ..common_les.errors import (
    TxAlreadyKnownError, TxOversizedDataError, TxGasLimitError, TxInvalidSenderError, TxUnderpricedError,
    TxReplacementUnderpricedError, TxNonceTooLowError, TxInsufficientFundsError, TxIntrinsicGasError,
    TxPoolOverflowError
)
from ..fixture.blocks import TxLookupEntry
from ..fixture.chain import TestChain


LOG = logging.getLogger(__name__)


class TxStatusCode(IntEnum):
    Unknown = 0
    Queued = 1
    Pending = 2
    Included = 3


@dataclass(frozen=True)
class TxStatusInfo:
    status: TxStatusCode
    lookup: Optional[TxLookupEntry] = None
    error: str = ''

    def to_rlp(self) -> list:
        lookup = [] if self.lookup is None else [self.lookup]
        return [int(self.status), lookup, self.error.encode()]


class _SenderTxDict:
    def __init__(self):
        self.pending: Dict[int, LegacyTx] = {}
        self.queued: Dict[int, LegacyTx] = {}

    def get(self, nonce: int) -> Optional[LegacyTx]:
        return self.pending.get(nonce) or self.queued.get(nonce)

    def __len__(self) -> int:
        return len(self.pending) + len(self.queued)


class TxPool:
    """Keeps transactions received from peers on top of the test chain state"""

    def __init__(self, config: Config, chain: TestChain):
        self._config = config
        self._chain = chain
        self._sender_dict: Dict[bytes, _SenderTxDict] = {}
        self._tx_dict: Dict[bytes, LegacyTx] = {}

    def __len__(self) -> int:
        return len(self._tx_dict)

    def _state_nonce(self, sender: bytes) -> int:
        account = self._chain.get_account(sender)
        return account.nonce if account is not None else 0

    def _state_balance(self, sender: bytes) -> int:
        account = self._chain.get_account(sender)
        return account.balance if account is not None else 0

    def _pending_nonce(self, sender: bytes) -> int:
        nonce = self._state_nonce(sender)
        sender_tx_dict = self._sender_dict.get(sender)
        if sender_tx_dict is not None:
            while nonce in sender_tx_dict.pending:
                nonce += 1
        return nonce

    def _validate_tx(self, tx: LegacyTx) -> bytes:
        tx_size = len(rlp.encode(tx))
        if tx_size > TX_MAX_SIZE:
            raise TxOversizedDataError(tx_size)

        if tx.gasLimit > BLOCK_GAS_LIMIT:
            raise TxGasLimitError(tx.gasLimit, BLOCK_GAS_LIMIT)

        try:
            sender = tx.sender()
        except (InvalidLegacyTx, BadSignature, ValidationError) as exc:
            raise TxInvalidSenderError(exc)

        if tx.gasPrice < self._config.tx_pool_min_gas_price:
            raise TxUnderpricedError(tx.gasPrice, self._config.tx_pool_min_gas_price)

        state_nonce = self._state_nonce(sender)
        if tx.nonce < state_nonce:
            raise TxNonceTooLowError('0x' + sender.hex(), tx.nonce, state_nonce)

        balance = self._state_balance(sender)
        if balance < tx.cost():
            raise TxInsufficientFundsError('0x' + sender.hex(), balance, tx.cost())

        intrinsic_gas = tx.intrinsic_gas()
        if tx.gasLimit < intrinsic_gas:
            raise TxIntrinsicGasError(tx.gasLimit, intrinsic_gas)

        return sender

    def add_tx(self, tx: LegacyTx) -> TxStatusCode:
        """Validates and adds the transaction, raises TxPoolError on rejection"""
        tx_hash = tx.hash_signed()
        if (tx_hash in self._tx_dict) or (self._chain.get_tx_lookup(tx_hash) is not None):
            raise TxAlreadyKnownError()

        sender = self._validate_tx(tx)
        sender_tx_dict = self._sender_dict.setdefault(sender, _SenderTxDict())

        old_tx = sender_tx_dict.get(tx.nonce)
        if old_tx is not None:
            min_gas_price = old_tx.gasPrice * (100 + self._config.tx_pool_price_bump_pct) // 100
            if tx.gasPrice < min_gas_price:
                raise TxReplacementUnderpricedError()
            LOG.debug(f'Replace tx {old_tx.hash_signed().hex()} by {tx_hash.hex()}')
            self._remove_tx(sender_tx_dict, old_tx)
        elif len(self._tx_dict) >= self._config.tx_pool_capacity:
            raise TxPoolOverflowError(self._config.tx_pool_capacity)

        self._tx_dict[tx_hash] = tx
        if tx.nonce == self._pending_nonce(sender):
            sender_tx_dict.pending[tx.nonce] = tx
            self._promote_queued(sender, sender_tx_dict)
            return TxStatusCode.Pending

        sender_tx_dict.queued[tx.nonce] = tx
        return TxStatusCode.Queued

    def _remove_tx(self, sender_tx_dict: _SenderTxDict, tx: LegacyTx) -> None:
        self._tx_dict.pop(tx.hash_signed(), None)
        sender_tx_dict.pending.pop(tx.nonce, None)
        sender_tx_dict.queued.pop(tx.nonce, None)

    def _promote_queued(self, sender: bytes, sender_tx_dict: _SenderTxDict) -> None:
        nonce = self._pending_nonce(sender)
        while nonce in sender_tx_dict.queued:
            sender_tx_dict.pending[nonce] = sender_tx_dict.queued.pop(nonce)
            nonce += 1

    def get_tx_status(self, tx_hash: bytes) -> TxStatusInfo:
        lookup = self._chain.get_tx_lookup(tx_hash)
        if lookup is not None:
            return TxStatusInfo(TxStatusCode.Included, lookup=lookup)

        tx = self._tx_dict.get(tx_hash)
        if tx is None:
            return TxStatusInfo(TxStatusCode.Unknown)

        sender_tx_dict = self._sender_dict[tx.sender()]
        if tx.nonce in sender_tx_dict.pending:
            return TxStatusInfo(TxStatusCode.Pending)
        return TxStatusInfo(TxStatusCode.Queued)

    def get_pending_nonce(self, sender: bytes) -> int:
        return self._pending_nonce(sender)
