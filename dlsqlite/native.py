import ctypes
import ctypes.util
import enum
import logging
import os
import sys
from ctypes import c_int, c_int64, c_double, c_char_p, c_void_p, POINTER

logger = logging.getLogger(__name__)

# Result codes (must match sqlite3.h).
#
# Only the primary codes are listed; extended codes carry the primary code in
# their low byte.
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_INTERNAL = 2
SQLITE_PERM = 3
SQLITE_ABORT = 4
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_NOMEM = 7
SQLITE_READONLY = 8
SQLITE_INTERRUPT = 9
SQLITE_IOERR = 10
SQLITE_CORRUPT = 11
SQLITE_NOTFOUND = 12
SQLITE_FULL = 13
SQLITE_CANTOPEN = 14
SQLITE_PROTOCOL = 15
SQLITE_EMPTY = 16
SQLITE_SCHEMA = 17
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_NOLFS = 22
SQLITE_AUTH = 23
SQLITE_FORMAT = 24
SQLITE_RANGE = 25
SQLITE_NOTADB = 26
SQLITE_NOTICE = 27
SQLITE_WARNING = 28
SQLITE_ROW = 100
SQLITE_DONE = 101

# Informational codes: never turned into exceptions.
NON_ERROR_CODES = frozenset((SQLITE_OK, SQLITE_ROW, SQLITE_DONE))


class ValueType(enum.IntEnum):
    """Fundamental datatypes reported by sqlite3_value_type."""
    INTEGER = 1
    FLOAT = 2
    TEXT = 3
    BLOB = 4
    NULL = 5


class ThreadSafe(enum.IntEnum):
    """Compile-time SQLITE_THREADSAFE setting of the loaded library."""
    SINGLETHREAD = 0
    MULTITHREAD = 1
    SERIALIZED = 2


class OpenFlags(enum.IntFlag):
    """Flags for sqlite3_open_v2. Passed to the engine unmodified."""
    READONLY = 0x00000001
    READWRITE = 0x00000002
    CREATE = 0x00000004
    URI = 0x00000040
    # Multi-thread mode: the connection carries no mutex.
    NOMUTEX = 0x00008000
    # Serialized mode.
    FULLMUTEX = 0x00010000
    SHAREDCACHE = 0x00020000
    PRIVATECACHE = 0x00040000


DEFAULT_OPEN_FLAGS = OpenFlags.READWRITE | OpenFlags.CREATE

LIB_PATH_ENV = "DLSQLITE_NATIVE_LIB"


class LibraryLoadError(RuntimeError):
    """The engine library or one of its symbols could not be bound.

    Raised while loading, never by a call into an already loaded library.
    """


_lib = None


def library_names(platform=None):
    """Well-known file names of the engine library for a platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return ["sqlite3.dll", "winsqlite3.dll"]
    if platform == "darwin":
        return ["libsqlite3.dylib", "libsqlite3.0.dylib"]
    return ["libsqlite3.so", "libsqlite3.so.0"]


def _candidates():
    lib_path = os.environ.get(LIB_PATH_ENV)
    if lib_path:
        # An explicit path is authoritative; don't fall back to the system copy.
        return [lib_path]

    candidates = library_names()
    found = ctypes.util.find_library("sqlite3")
    if found and found not in candidates:
        candidates.append(found)
    return candidates


def _open_first(candidates):
    errors = []
    for path in candidates:
        try:
            lib = ctypes.CDLL(path)
        except OSError as e:
            logger.debug("Could not load %s: %s", path, e)
            errors.append(f"{path}: {e}")
            continue
        logger.debug("Loaded sqlite native library from %s", path)
        return lib
    raise LibraryLoadError(
        f"Could not find sqlite native library (tried {', '.join(candidates)}). "
        f"Set {LIB_PATH_ENV} env var. " + "; ".join(errors)
    )


def _bind(lib, symbol, restype, *argtypes):
    try:
        func = getattr(lib, symbol)
    except AttributeError as e:
        raise LibraryLoadError(f"Finding symbol {symbol} failed: {e}") from e
    func.restype = restype
    func.argtypes = list(argtypes)
    return func


def load_library():
    global _lib
    if _lib is not None:
        return _lib

    lib = _open_first(_candidates())

    # Define signatures. Opaque handles (sqlite3*, sqlite3_stmt*,
    # sqlite3_value*) are all plain void pointers.

    # Run-time library version numbers
    _bind(lib, "sqlite3_libversion", c_char_p)
    _bind(lib, "sqlite3_sourceid", c_char_p)
    _bind(lib, "sqlite3_libversion_number", c_int)

    # Test to see if the library is threadsafe
    _bind(lib, "sqlite3_threadsafe", c_int)

    # Connection handle
    _bind(lib, "sqlite3_open_v2", c_int,
          c_char_p,             # filename (UTF-8)
          POINTER(c_void_p),    # OUT: db handle
          c_int,                # flags
          c_char_p)             # name of VFS module to use
    _bind(lib, "sqlite3_close_v2", c_int, c_void_p)

    # Prepared statement object
    _bind(lib, "sqlite3_prepare_v2", c_int,
          c_void_p,             # db handle
          c_char_p,             # SQL statement, UTF-8 encoded
          c_int,                # maximum length of SQL in bytes, -1 for NUL terminated
          POINTER(c_void_p),    # OUT: statement handle
          POINTER(c_void_p))    # OUT: pointer to unused portion of SQL
    _bind(lib, "sqlite3_finalize", c_int, c_void_p)
    _bind(lib, "sqlite3_step", c_int, c_void_p)
    _bind(lib, "sqlite3_reset", c_int, c_void_p)

    # Columns. The leftmost column is number 0.
    _bind(lib, "sqlite3_column_name", c_char_p, c_void_p, c_int)
    _bind(lib, "sqlite3_column_count", c_int, c_void_p)
    _bind(lib, "sqlite3_column_value", c_void_p, c_void_p, c_int)

    # Dynamically typed value object
    _bind(lib, "sqlite3_value_blob", c_void_p, c_void_p)
    _bind(lib, "sqlite3_value_bytes", c_int, c_void_p)
    _bind(lib, "sqlite3_value_double", c_double, c_void_p)
    _bind(lib, "sqlite3_value_int64", c_int64, c_void_p)
    _bind(lib, "sqlite3_value_text", c_char_p, c_void_p)
    _bind(lib, "sqlite3_value_type", c_int, c_void_p)

    # Error codes and messages
    _bind(lib, "sqlite3_errmsg", c_char_p, c_void_p)
    _bind(lib, "sqlite3_errstr", c_char_p, c_int)

    _lib = lib
    return _lib
