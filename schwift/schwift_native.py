"""
The native-binding bridge: loads shared libraries with ctypes and turns their
symbols into callables the evaluator can invoke like Schwift functions.
"""
import ctypes
import ctypes.util
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from schwift.schwift_errors import IOFailure, SchwiftError, UnexpectedType


def _dbg(*parts):
    if os.environ.get("SCHWIFT_DEBUG"):
        print("[DBG]", *parts, file=sys.stderr)


RESTYPES = {
    "int": ctypes.c_long,
    "float": ctypes.c_double,
    "str": ctypes.c_char_p,
}


class NativeCallable:
    """A bound native symbol.

    Arguments are marshalled as C long (int, bool), double (float) or
    char* (str). The result is read back as the declared return type:
    long by default, double for `float`, char* for `str` (NULL becomes none).
    """
    def __init__(self, symbol: str, func: Any, returns: Optional[str] = None):
        self.symbol = symbol
        self.returns = returns or "int"
        self._func = func
        self._func.restype = RESTYPES[self.returns]

    def _to_c(self, value: Any):
        match value:
            case bool() | int():
                return ctypes.c_long(int(value))
            case float():
                return ctypes.c_double(value)
            case str():
                return ctypes.c_char_p(value.encode("utf-8"))
            case _:
                raise SchwiftError(UnexpectedType("int, float or str", value))

    def __call__(self, args: List[Any]) -> Any:
        c_args = [self._to_c(a) for a in args]
        _dbg("native call", self.symbol, args)
        try:
            result = self._func(*c_args)
            if isinstance(result, bytes):
                result = result.decode("utf-8")
        except (ctypes.ArgumentError, OSError, UnicodeDecodeError) as e:
            raise SchwiftError(IOFailure(e)) from e
        return result

    def __repr__(self):
        return f"<NativeCallable {self.symbol}>"


class NativeLibraryRegistry:
    """Process-wide table of loaded libraries.

    Handles are cached on the class and never unloaded while the process
    runs, so every NativeCallable bound from them stays valid.
    """
    _handles: Dict[str, Any] = {}

    def resolve_path(self, path: str) -> str:
        """Uses the path as given when it exists, else asks ctypes to find it (`"m"`, `"c"`)."""
        if Path(path).exists():
            return str(Path(path).resolve())
        found = ctypes.util.find_library(path)
        return found or path

    def load(self, path: str) -> Any:
        resolved = self.resolve_path(path)
        handle = NativeLibraryRegistry._handles.get(resolved)
        if handle is not None:
            return handle
        _dbg("loading native library", path, "->", resolved)
        try:
            handle = ctypes.CDLL(resolved)
        except OSError as e:
            raise SchwiftError(IOFailure(e)) from e
        NativeLibraryRegistry._handles[resolved] = handle
        return handle

    def bind(self, handle: Any, symbol: str, returns: Optional[str] = None) -> NativeCallable:
        # Indexing gives a fresh function pointer; attribute access is cached
        # per handle, and each binding sets its own restype.
        try:
            func = handle[symbol]
        except AttributeError as e:
            raise SchwiftError(IOFailure(OSError(f"undefined symbol: {symbol}"))) from e
        return NativeCallable(symbol, func, returns)

    @classmethod
    def loaded(cls) -> List[str]:
        return list(cls._handles.keys())
