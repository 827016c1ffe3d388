from __future__ import annotations

import rlp

from eth_keys import keys
from eth_utils import keccak
from typing import Optional

from .constants import TX_GAS, TX_GAS_CONTRACT_CREATION, TX_DATA_ZERO_GAS, TX_DATA_NON_ZERO_GAS

'''
0xf8 6b
80 - nonce
85 0ba43b7400 - gasPrice
82 5208 - gasLimit
94 7917bc33eea648809c285607579c9919fb864f8f - toAddress
87 03baf82d03a000 - value
80 - callData
25 - v
a0 067940651530790861714b2e8fd8b080361d1ada048189000c07a66848afde46 - r
a0 69b041db7c29dbcc6becf42017ca7ac086b12bd53ec8ee494596f790fb6a0a69 - s
'''


class InvalidLegacyTx(Exception):
    pass


class LegacyTx(rlp.Serializable):
    fields = (
        ('nonce', rlp.sedes.big_endian_int),
        ('gasPrice', rlp.sedes.big_endian_int),
        ('gasLimit', rlp.sedes.big_endian_int),
        ('toAddress', rlp.sedes.binary),
        ('value', rlp.sedes.big_endian_int),
        ('callData', rlp.sedes.binary),
        ('v', rlp.sedes.big_endian_int),
        ('r', rlp.sedes.big_endian_int),
        ('s', rlp.sedes.big_endian_int)
    )

    secpk1n = 115792089237316195423570985008687907852837564279074904382605163141518161494337

    def __init__(self, *args, **kwargs):
        rlp.Serializable.__init__(self, *args, **kwargs)
        self._msg: Optional[bytes] = None
        self._hash_signed: Optional[bytes] = None
        self._sig: Optional[keys.Signature] = None
        self._sender_addr: Optional[bytes] = None

    @classmethod
    def sign(
        cls, key: keys.PrivateKey,
        nonce: int, gas_price: int, gas_limit: int,
        to_address: bytes, value: int, call_data: bytes = b''
    ) -> LegacyTx:
        """Homestead signature: no chain-id, v is 27 or 28"""
        unsigned_msg = rlp.encode((nonce, gas_price, gas_limit, to_address, value, call_data))
        sig = key.sign_msg_hash(keccak(unsigned_msg))
        return cls(nonce, gas_price, gas_limit, to_address, value, call_data, sig.v + 27, sig.r, sig.s)

    def hasChainId(self) -> bool:
        return self.v not in (27, 28)

    def chainId(self) -> Optional[int]:
        if not self.hasChainId():
            return None
        elif self.v >= 37:
            # chainid*2 + 35  xxxxx0 + 100011   xxxx0 + 100010 +1
            # chainid*2 + 36  xxxxx0 + 100100   xxxx0 + 100011 +1
            return ((self.v - 1) // 2) - 17
        else:
            raise InvalidLegacyTx(f'Invalid V value {self.v}')

    def _unsigned_msg(self) -> bytes:
        chain_id = self.chainId()
        if not self.hasChainId():
            return rlp.encode((
                self.nonce, self.gasPrice, self.gasLimit, self.toAddress, self.value, self.callData
            ))
        else:
            return rlp.encode((
                self.nonce, self.gasPrice, self.gasLimit, self.toAddress, self.value, self.callData,
                chain_id, 0, 0
            ))

    def unsigned_msg(self) -> bytes:
        if self._msg is None:
            self._msg = self._unsigned_msg()
        return self._msg

    def _signature(self) -> keys.Signature:
        if self._sig is None:
            self._sig = keys.Signature(vrs=[1 if self.v % 2 == 0 else 0, self.r, self.s])
        return self._sig

    def _sender(self) -> bytes:
        if not self.hasChainId():
            pass
        elif self.v >= 37:
            vee = self.v - self.chainId() * 2 - 8
            if vee not in (27, 28):
                raise InvalidLegacyTx(f'Invalid V value {self.v}')
        else:
            raise InvalidLegacyTx(f'Invalid V value {self.v}')

        if self.r >= self.secpk1n or self.s >= self.secpk1n or self.r == 0 or self.s == 0:
            raise InvalidLegacyTx(f'Invalid signature values: r={self.r} s={self.s}!')

        sighash = keccak(self.unsigned_msg())
        sig = self._signature()
        pub = sig.recover_public_key_from_msg_hash(sighash)

        return pub.to_canonical_address()

    def sender(self) -> bytes:
        if self._sender_addr is None:
            self._sender_addr = self._sender()
        return self._sender_addr

    def hash_signed(self) -> bytes:
        if self._hash_signed is None:
            self._hash_signed = keccak(rlp.encode(self))
        return self._hash_signed

    def contract(self) -> Optional[bytes]:
        if self.toAddress:
            return None
        return contract_address(self.sender(), self.nonce)

    def intrinsic_gas(self) -> int:
        gas = TX_GAS if self.toAddress else TX_GAS_CONTRACT_CREATION
        zero_cnt = self.callData.count(0)
        gas += zero_cnt * TX_DATA_ZERO_GAS
        gas += (len(self.callData) - zero_cnt) * TX_DATA_NON_ZERO_GAS
        return gas

    def cost(self) -> int:
        return self.gasPrice * self.gasLimit + self.value


def contract_address(sender: bytes, nonce: int) -> bytes:
    return keccak(rlp.encode((sender, nonce)))[-20:]
