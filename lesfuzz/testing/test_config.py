import os
import logging
import unittest

from unittest.mock import patch

from ..common_les.config import Config
from ..common_les.constants import GWEI, SOFT_RESPONSE_LIMIT, PROTOCOL_MAX_MSG_SIZE

from .testing_helpers import bank_key


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config()
        self.assertEqual(config.min_input_len, 100)
        self.assertEqual(config.test_chain_len, 256)
        self.assertEqual(config.bank_key.to_bytes(), bank_key.to_bytes())
        self.assertEqual(config.tx_pool_min_gas_price, GWEI)
        self.assertEqual(config.soft_response_limit, SOFT_RESPONSE_LIMIT)
        self.assertEqual(config.max_msg_size, PROTOCOL_MAX_MSG_SIZE)
        self.assertEqual(config.log_level, logging.WARNING)
        self.assertFalse(config.log_json)

        config_dict = config.as_dict()
        self.assertNotIn('FUZZ_BANK_KEY', config_dict)
        self.assertEqual(config_dict['FUZZ_BANK_ADDRESS'], bank_key.public_key.to_checksum_address())
        self.assertEqual(config_dict['LOG_LEVEL'], 'WARNING')

    def test_env_values(self):
        env = {
            'FUZZ_MIN_INPUT_LEN': '200',
            'FUZZ_TEST_CHAIN_LEN': '32',
            'FUZZ_BANK_KEY': '0x' + '11' * 32,
            'TX_POOL_MIN_GAS_PRICE': '3',
            'LOG_LEVEL': 'debug',
            'LOG_JSON': 'yes',
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config()
        self.assertEqual(config.min_input_len, 200)
        self.assertEqual(config.test_chain_len, 32)
        self.assertEqual(config.bank_key.to_bytes(), b'\x11' * 32)
        self.assertEqual(config.tx_pool_min_gas_price, 3 * GWEI)
        self.assertEqual(config.log_level, logging.DEBUG)
        self.assertTrue(config.log_json)

    def test_bad_env_values(self):
        env = {
            'FUZZ_MIN_INPUT_LEN': 'many',
            'FUZZ_TEST_CHAIN_LEN': '100000',
            'FUZZ_BANK_KEY': 'not-a-key',
            'TX_POOL_CAPACITY': '1',
            'LOG_LEVEL': 'LOUD',
            'LOG_JSON': 'maybe',
        }
        with patch.dict(os.environ, env, clear=True):
            with self.assertLogs('lesfuzz.common_les.config', level='ERROR'):
                config = Config()
        self.assertEqual(config.min_input_len, 100)
        self.assertEqual(config.test_chain_len, 4096)
        self.assertEqual(config.bank_key.to_bytes(), bank_key.to_bytes())
        self.assertEqual(config.tx_pool_capacity, 16)
        self.assertEqual(config.log_level, logging.WARNING)
        self.assertFalse(config.log_json)


if __name__ == '__main__':
    unittest.main()
