from __future__ import annotations

from typing import Dict, Any


class LesProtocolError(Exception):
    """Request rejected by the LES server, the peer is expected to be punished"""
    def __init__(self, message: str, code: int = 0, data=None):
        super().__init__(message, code, data)
        self._code = code
        self._msg = message
        self._data = data

    @property
    def code(self) -> int:
        return self._code

    def get_error(self) -> Dict[str, Any]:
        error = {'code': self._code, 'message': self._msg}
        if self._data:
            error['data'] = self._data
        return error

    def __str__(self) -> str:
        return self._msg


class LesMsgTooLargeError(LesProtocolError):
    def __init__(self, msg_size: int, max_size: int):
        super().__init__(f'Message too long: {msg_size} > {max_size}', code=0x01)


class LesUnknownMsgError(LesProtocolError):
    def __init__(self, msg_code: int):
        super().__init__(f'Invalid message code {msg_code}', code=0x02)


class LesDecodeError(LesProtocolError):
    def __init__(self, msg_name: str, err: Exception):
        super().__init__(f'{msg_name}: {str(err)}', code=0x03)


class LesRequestRejectedError(LesProtocolError):
    def __init__(self, message: str):
        super().__init__(message, code=0x07)


class TxPoolError(Exception):
    pass


class TxAlreadyKnownError(TxPoolError):
    def __init__(self):
        super().__init__('already known')


class TxOversizedDataError(TxPoolError):
    def __init__(self, tx_size: int):
        super().__init__(f'oversized data: transaction size {tx_size}')


class TxGasLimitError(TxPoolError):
    def __init__(self, gas_limit: int, block_gas_limit: int):
        super().__init__(f'exceeds block gas limit: {gas_limit} > {block_gas_limit}')


class TxInvalidSenderError(TxPoolError):
    def __init__(self, err: Exception):
        super().__init__(f'invalid sender: {str(err)}')


class TxUnderpricedError(TxPoolError):
    def __init__(self, gas_price: int, min_gas_price: int):
        super().__init__(f'transaction underpriced: gas price {gas_price} < {min_gas_price}')


class TxReplacementUnderpricedError(TxPoolError):
    def __init__(self):
        super().__init__('replacement transaction underpriced')


class TxNonceTooLowError(TxPoolError):
    def __init__(self, sender: str, tx_nonce: int, state_nonce: int):
        super().__init__(f'nonce too low: address {sender}, tx: {tx_nonce} state: {state_nonce}')


class TxInsufficientFundsError(TxPoolError):
    def __init__(self, sender: str, balance: int, cost: int):
        super().__init__(f'insufficient funds for gas * price + value: address {sender} have {balance} want {cost}')


class TxIntrinsicGasError(TxPoolError):
    def __init__(self, gas_limit: int, intrinsic_gas: int):
        super().__init__(f'intrinsic gas too low: have {gas_limit}, want {intrinsic_gas}')


class TxPoolOverflowError(TxPoolError):
    def __init__(self, capacity: int):
        super().__init__(f'txpool is full: capacity {capacity}')
