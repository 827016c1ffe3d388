import sys
import logging

logging.basicConfig(handlers=[logging.StreamHandler(sys.stdout)], level=logging.WARNING)
