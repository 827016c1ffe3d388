import sys
import logging

import atheris

from .common_les.config import Config
from .common_les.utils.json_logger import init_logging
from .fixture.chain import TestChain
from .fuzzer.les_fuzzer import fuzz_one_input


LOG = logging.getLogger(__name__)


config = Config()
init_logging(config)
LOG.info(f'Config: {config.as_dict()}')

chain = TestChain(config.bank_key, config.test_chain_len)
LOG.info(
    f'Test chain: head {chain.head_number}, {len(chain.tx_hash_list)} transactions, '
    f'bank 0x{chain.bank_address.hex()}'
)


def TestOneInput(data: bytes) -> None:
    fuzz_one_input(data, chain, config.bank_key, config)


def main():
    atheris.instrument_all()
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == '__main__':
    main()
