import os
import logging

from typing import Optional

from eth_keys import keys

from .constants import SOFT_RESPONSE_LIMIT, PROTOCOL_MAX_MSG_SIZE, GWEI

LOG = logging.getLogger(__name__)


# Well-known test key, never use it outside of the fuzzing environment
_DEFAULT_BANK_KEY = '0x886d5b4ce9465473701bf394b1b0b217548c57576436864fcbc1f554033a0680'


class Config:
    def __init__(self):
        # Fuzzing settings
        self._min_input_len = self._env_num('FUZZ_MIN_INPUT_LEN', 100, 0, 1024 * 1024)
        self._test_chain_len = self._env_num('FUZZ_TEST_CHAIN_LEN', 256, 1, 4096)
        self._bank_key = self._env_private_key('FUZZ_BANK_KEY', _DEFAULT_BANK_KEY)

        # Transaction pool settings
        self._tx_pool_capacity = self._env_num('TX_POOL_CAPACITY', 4096, 16, 4096 * 1024)
        self._tx_pool_min_gas_price = self._env_num('TX_POOL_MIN_GAS_PRICE', 1, 0, 100_000_000) * GWEI
        self._tx_pool_price_bump_pct = self._env_num('TX_POOL_PRICE_BUMP_PCT', 10, 0, 1000)

        # LES server settings
        self._soft_response_limit = self._env_num(
            'LES_SOFT_RESPONSE_LIMIT',
            SOFT_RESPONSE_LIMIT,
            1024,
            PROTOCOL_MAX_MSG_SIZE
        )
        self._max_msg_size = self._env_num('LES_MAX_MSG_SIZE', PROTOCOL_MAX_MSG_SIZE, 1024, 64 * 1024 * 1024)

        # Logging settings
        self._log_level = self._env_log_level('LOG_LEVEL', logging.WARNING)
        self._log_json = self._env_bool('LOG_JSON', False)

        self._validate()

    def _validate(self) -> None:
        assert self._soft_response_limit <= self._max_msg_size

    @staticmethod
    def _env_bool(name: str, default_value: bool) -> bool:
        true_value_list = ('YES', 'ON', 'TRUE')
        false_value_list = ('NO', 'OFF', 'FALSE')

        value = os.environ.get(name, true_value_list[0] if default_value else false_value_list[0]).upper().strip()
        if (value not in true_value_list) and (value not in false_value_list):
            LOG.error(f'{name} cannot be: {true_value_list} or {false_value_list}')
            return default_value

        return value in true_value_list

    @staticmethod
    def _env_num(
        name: str, default_value: int,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None
    ) -> int:
        value = os.environ.get(name, None)
        if value is None:
            return default_value

        try:
            value = int(value, base=10)

            if (min_value is not None) and (value < min_value):
                LOG.error(f'{name} cannot be less than min value {min_value}')
                value = min_value
            elif (max_value is not None) and (value > max_value):
                LOG.error(f'{name} cannot be bigger than max value {max_value}')
                value = max_value
            return value

        except (BaseException, ):
            LOG.error(f'Bad value for {name}, force to use default value {default_value}')
            return default_value

    @staticmethod
    def _env_private_key(name: str, default_value: str) -> keys.PrivateKey:
        default_key = keys.PrivateKey(bytes.fromhex(default_value[2:]))

        value = os.environ.get(name, None)
        if value is None:
            return default_key

        try:
            value = value.strip()
            if value[:2] in {'0x', '0X'}:
                value = value[2:]
            return keys.PrivateKey(bytes.fromhex(value))
        except (BaseException, ):
            LOG.error(f'Bad value for {name}, force to use default key')
            return default_key

    @staticmethod
    def _env_log_level(name: str, default_value: int) -> int:
        value = os.environ.get(name, None)
        if value is None:
            return default_value

        level = logging.getLevelName(value.upper().strip())
        if not isinstance(level, int):
            LOG.error(f'Bad value for {name}, force to use default value {logging.getLevelName(default_value)}')
            return default_value
        return level

    ###################
    # Fuzzing settings

    @property
    def min_input_len(self) -> int:
        return self._min_input_len

    @property
    def test_chain_len(self) -> int:
        return self._test_chain_len

    @property
    def bank_key(self) -> keys.PrivateKey:
        return self._bank_key

    ###################
    # Transaction pool settings

    @property
    def tx_pool_capacity(self) -> int:
        return self._tx_pool_capacity

    @property
    def tx_pool_min_gas_price(self) -> int:
        return self._tx_pool_min_gas_price

    @property
    def tx_pool_price_bump_pct(self) -> int:
        return self._tx_pool_price_bump_pct

    ###################
    # LES server settings

    @property
    def soft_response_limit(self) -> int:
        return self._soft_response_limit

    @property
    def max_msg_size(self) -> int:
        return self._max_msg_size

    ###################
    # Logging settings

    @property
    def log_level(self) -> int:
        return self._log_level

    @property
    def log_json(self) -> bool:
        return self._log_json

    def as_dict(self) -> dict:
        return {
            # Fuzzing settings
            'FUZZ_MIN_INPUT_LEN': self.min_input_len,
            'FUZZ_TEST_CHAIN_LEN': self.test_chain_len,
            # Don't print private configuration
            # 'FUZZ_BANK_KEY': self.bank_key,
            'FUZZ_BANK_ADDRESS': self.bank_key.public_key.to_checksum_address(),

            # Transaction pool settings
            'TX_POOL_CAPACITY': self.tx_pool_capacity,
            'TX_POOL_MIN_GAS_PRICE': self.tx_pool_min_gas_price,
            'TX_POOL_PRICE_BUMP_PCT': self.tx_pool_price_bump_pct,

            # LES server settings
            'LES_SOFT_RESPONSE_LIMIT': self.soft_response_limit,
            'LES_MAX_MSG_SIZE': self.max_msg_size,

            # Logging settings
            'LOG_LEVEL': logging.getLevelName(self.log_level),
            'LOG_JSON': self.log_json,
        }
