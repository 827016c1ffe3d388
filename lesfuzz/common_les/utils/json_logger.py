import sys
import json
import logging
import threading
import contextlib
import traceback
import copy
from logging import LogRecord, Filter
from datetime import datetime

from ..config import Config


class JSONFormatter(logging.Formatter):
    def format(self, record: LogRecord) -> str:
        message_dict = dict()
        message_dict.update({
            "level": record.levelname,
            "date": datetime.fromtimestamp(record.created).isoformat(),
            "module": f"{record.filename}:{record.lineno}",
            "process": record.process
        })
        if isinstance(record.msg, dict):
            message_dict.update(record.msg)
        else:
            message_dict["message"] = record.getMessage()
        if isinstance(getattr(record, "context", None), dict):
            message_dict.update(record.context)

        if record.exc_info:
            message_dict["exc_info"] = {
                "type": str(record.exc_info[0]),
                "exception": str(record.exc_info[1]),
                "traceback": [
                    line.strip().replace('"', '\'').replace('\n', '')
                    for line in traceback.format_tb(record.exc_info[2])
                ]
            }

        return json.dumps(message_dict, default=str)


class ContextFilter(Filter):
    def filter(self, record: LogRecord) -> bool:
        thread = threading.current_thread()
        if hasattr(thread, "log_context"):
            record.context = thread.log_context
        return True


@contextlib.contextmanager
def logging_context(**kwargs):
    thread = threading.current_thread()
    old_log_context = {}
    if not hasattr(thread, "log_context"):
        thread.log_context = {}
    else:
        old_log_context = copy.deepcopy(thread.log_context)
    thread.log_context.update(kwargs)
    try:
        yield
    finally:
        thread.log_context = old_log_context


def init_logging(config: Config) -> None:
    handler = logging.StreamHandler(sys.stderr)
    if config.log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s - pid:%(process)d [%(levelname)-.1s] %(name)s - %(message)s'))
    handler.addFilter(ContextFilter())
    logging.basicConfig(handlers=[handler], level=config.log_level, force=True)
