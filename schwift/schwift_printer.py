"""
A printer for Schwift runtime values.
"""
from typing import Any


TYPE_NAMES = {
    bool: "bool",
    int: "int",
    float: "float",
    str: "str",
    list: "list",
    type(None): "none",
}


def type_str(value: Any) -> str:
    """Returns the Schwift type name of a runtime value."""
    return TYPE_NAMES.get(type(value), type(value).__name__)


class Printer:
    """Formats Schwift values the way `print` shows them.

    Top-level strings are written raw; inside lists (and in `pformat` with
    `quote_strings=True`) they are quoted so the structure stays readable.
    """

    def __init__(self, quote_strings: bool = False):
        self.quote_strings = quote_strings
        self._handlers = self._create_handlers()

    def pformat(self, obj, nested=False):
        """Public entry point to format a value."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            return repr(obj)
        return handler(obj, nested)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_primitive,
            float: self._pformat_primitive,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            list: self._pformat_list,
        }

    def _pformat_primitive(self, obj, nested):
        return str(obj)

    def _pformat_str(self, obj, nested):
        if nested or self.quote_strings:
            escaped = obj.replace('\\', '\\\\').replace('"', '\\"')
            return f'"{escaped}"'
        return obj

    def _pformat_bool(self, obj, nested):
        return 'true' if obj else 'false'

    def _pformat_none(self, obj, nested):
        return 'none'

    def _pformat_list(self, obj, nested):
        return "[" + ", ".join(self.pformat(item, nested=True) for item in obj) + "]"
