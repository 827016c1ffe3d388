from __future__ import annotations

import os

from enum import Enum
from typing import Any, Tuple, List


LOG_FULL_OBJECT_INFO = os.environ.get('LOG_FULL_OBJECT_INFO', 'NO').upper() in ('YES', 'ON', 'TRUE')


def str_enum(value: Enum) -> str:
    return value.name


def str_fmt_value(value: Any) -> str:
    """Short form of a request field for log messages"""
    if isinstance(value, Enum):
        return str_enum(value)
    elif isinstance(value, (bytes, bytearray)):
        value = value.hex()
        if (not LOG_FULL_OBJECT_INFO) and (len(value) > 20):
            value = value[:20] + '...'
        return "'" + value + "'"
    elif isinstance(value, (list, tuple)):
        if LOG_FULL_OBJECT_INFO:
            return '[' + ', '.join(str_fmt_value(item) for item in value) + ']'
        return 'list(len=' + str(len(value)) + ', [...])'
    elif hasattr(value, '_meta') and hasattr(value._meta, 'field_names'):
        return str_fmt_rlp(value)
    return str(value)


def str_fmt_rlp(obj: Any) -> str:
    """Formats rlp.Serializable records: Name(field=value, ...)"""
    field_list: List[Tuple[str, Any]] = [(name, getattr(obj, name)) for name in obj._meta.field_names]
    content = ', '.join(f'{name}={str_fmt_value(value)}' for name, value in field_list)
    return f'{type(obj).__name__}({content})'

