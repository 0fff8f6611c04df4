from .native import (
    load_library, LibraryLoadError, OpenFlags, ValueType, ThreadSafe,
    DEFAULT_OPEN_FLAGS, NON_ERROR_CODES,
    SQLITE_OK, SQLITE_ERROR, SQLITE_INTERNAL, SQLITE_PERM, SQLITE_ABORT,
    SQLITE_BUSY, SQLITE_LOCKED, SQLITE_NOMEM, SQLITE_READONLY,
    SQLITE_INTERRUPT, SQLITE_IOERR, SQLITE_CORRUPT, SQLITE_NOTFOUND,
    SQLITE_FULL, SQLITE_CANTOPEN, SQLITE_PROTOCOL, SQLITE_EMPTY,
    SQLITE_SCHEMA, SQLITE_TOOBIG, SQLITE_CONSTRAINT, SQLITE_MISMATCH,
    SQLITE_MISUSE, SQLITE_RANGE, SQLITE_NOTADB, SQLITE_ROW, SQLITE_DONE,
)
import collections.abc
import ctypes
import enum
import json
import logging
import os
import weakref

logger = logging.getLogger(__name__)


# Exceptions
class Error(Exception):
    """Base class of every error reported by the engine or by this binding.

    `code` is the native result code (None for errors detected before any
    native call), `sql` the statement text the failing call was running.
    """

    def __init__(self, message, code=None, sql=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.sql = sql

    def __str__(self):
        if self.sql is None:
            return self.message
        ctx = {"native_code": self.code, "sql": self.sql}
        return self.message + "\nContext: " + json.dumps(ctx, ensure_ascii=False)

class Warning(Exception):
    pass

class InterfaceError(Error):
    pass

class DatabaseError(Error):
    pass

class InternalError(DatabaseError):
    pass

class OperationalError(DatabaseError):
    pass

class ProgrammingError(DatabaseError):
    pass

class IntegrityError(DatabaseError):
    pass

class DataError(DatabaseError):
    pass

class NotSupportedError(DatabaseError):
    pass


# Primary result code -> exception class. Anything missing is a DatabaseError.
_ERROR_CLASSES = {
    SQLITE_INTERNAL: InternalError,
    SQLITE_NOTFOUND: InternalError,
    SQLITE_ERROR: OperationalError,
    SQLITE_PERM: OperationalError,
    SQLITE_ABORT: OperationalError,
    SQLITE_BUSY: OperationalError,
    SQLITE_LOCKED: OperationalError,
    SQLITE_NOMEM: OperationalError,
    SQLITE_READONLY: OperationalError,
    SQLITE_INTERRUPT: OperationalError,
    SQLITE_IOERR: OperationalError,
    SQLITE_FULL: OperationalError,
    SQLITE_CANTOPEN: OperationalError,
    SQLITE_PROTOCOL: OperationalError,
    SQLITE_EMPTY: OperationalError,
    SQLITE_SCHEMA: OperationalError,
    SQLITE_CORRUPT: DatabaseError,
    SQLITE_NOTADB: DatabaseError,
    SQLITE_TOOBIG: DataError,
    SQLITE_RANGE: DataError,
    SQLITE_CONSTRAINT: IntegrityError,
    SQLITE_MISMATCH: IntegrityError,
    SQLITE_MISUSE: ProgrammingError,
}


def error_for_code(code, db_handle, sql=None):
    """Map a native result code to an exception instance.

    Returns None for SQLITE_OK, SQLITE_ROW and SQLITE_DONE. The message comes
    from the connection when `db_handle` is a live handle, otherwise from the
    generic code-to-string table.
    """
    if code in NON_ERROR_CODES:
        return None
    lib = load_library()
    if db_handle:
        msg = lib.sqlite3_errmsg(db_handle)
    else:
        msg = lib.sqlite3_errstr(code)
    # Be defensive: native messages should be UTF-8, but don't crash if not.
    msg_str = msg.decode('utf-8', errors='replace') if msg else "Unknown error"
    cls = _ERROR_CLASSES.get(code & 0xFF, DatabaseError)
    return cls(msg_str, code=code, sql=sql)


def _check(code, db_handle, sql=None):
    error = error_for_code(code, db_handle, sql)
    if error is not None:
        raise error
    return code


# Run-time library information
def lib_version():
    return load_library().sqlite3_libversion().decode('utf-8')

def lib_version_number():
    return int(load_library().sqlite3_libversion_number())

def source_id():
    return load_library().sqlite3_sourceid().decode('utf-8')

def thread_safe():
    """Threading mode the engine was compiled with (SQLITE_THREADSAFE)."""
    return ThreadSafe(load_library().sqlite3_threadsafe())


class StatementState(enum.Enum):
    READY = "ready"
    ROW = "row"
    DONE = "done"
    # The last step raised; row data is undefined until reset().
    FAILED = "failed"
    FINALIZED = "finalized"


class Value:
    """Dynamically typed view of one column of a statement's current row.

    The view is only usable while its row is current: the next step(),
    reset() or finalize() on the statement invalidates it. `blob` points into
    engine memory under the same rule; every other accessor returns an owned
    Python object.
    """

    def __init__(self, statement, generation, index):
        self._statement = statement
        self._generation = generation
        self.index = index

    def _handle(self):
        stmt = self._statement._current(self._generation)
        return self._statement._lib.sqlite3_column_value(stmt, self.index)

    @property
    def type(self):
        tag = self._statement._lib.sqlite3_value_type(self._handle())
        try:
            return ValueType(tag)
        except ValueError:
            raise InternalError(f"unreachable value type {tag}") from None

    @property
    def int64(self):
        return self._statement._lib.sqlite3_value_int64(self._handle())

    int = int64

    @property
    def double(self):
        return self._statement._lib.sqlite3_value_double(self._handle())

    @property
    def string(self):
        raw = self._statement._lib.sqlite3_value_text(self._handle())
        return raw.decode('utf-8', errors='replace') if raw else ""

    @property
    def blob(self):
        lib = self._statement._lib
        handle = self._handle()
        # sqlite3_value_bytes must follow sqlite3_value_blob.
        ptr = lib.sqlite3_value_blob(handle)
        n = lib.sqlite3_value_bytes(handle)
        if not ptr or n <= 0:
            return memoryview(b"")
        return memoryview((ctypes.c_ubyte * n).from_address(ptr))

    @property
    def data(self):
        lib = self._statement._lib
        handle = self._handle()
        ptr = lib.sqlite3_value_blob(handle)
        n = lib.sqlite3_value_bytes(handle)
        if not ptr or n <= 0:
            return b""
        return ctypes.string_at(ptr, n)

    @property
    def value(self):
        """The column as int, float, str, bytes or None (SQL NULL)."""
        kind = self.type
        if kind is ValueType.INTEGER:
            return self.int64
        elif kind is ValueType.FLOAT:
            return self.double
        elif kind is ValueType.TEXT:
            return self.string
        elif kind is ValueType.BLOB:
            return self.data
        else:
            return None

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return f"Value({self.value!r})"


class Cursor(collections.abc.Sequence):
    """Read-only view of the row a statement is positioned on.

    A Cursor is produced by each successful step while iterating a Statement
    and holds exactly `column_count` Values. It does not own anything and goes
    stale as soon as the statement moves; stale access raises
    ProgrammingError. To keep a row, copy it out with `row()`.
    """

    def __init__(self, statement):
        self._statement = statement
        self._generation = statement._generation

    def __len__(self):
        return self._statement.column_count

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        n = len(self)
        if index < 0:
            index += n
        if not 0 <= index < n:
            raise IndexError(f"column index out of range: {index}")
        self._statement._current(self._generation)
        return Value(self._statement, self._generation, index)

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def row(self):
        return tuple(v.value for v in self)

    def __str__(self):
        return str(list(self.row()))

    def __repr__(self):
        return f"Cursor({list(self.row())!r})"


def _prepare(connection, sql):
    """Compile the first statement of `sql`.

    Returns (native handle or None, tail), where `tail` is the index into `sql`
    of the first character the engine did not consume. The handle is None
    when the text holds only whitespace or comments.
    """
    lib = connection._lib
    encoded = sql.encode('utf-8')
    buf = ctypes.create_string_buffer(encoded)
    stmt_ptr = ctypes.c_void_p()
    tail_ptr = ctypes.c_void_p()
    connection._check(
        lib.sqlite3_prepare_v2(
            connection._handle(),
            buf,
            -1,
            ctypes.byref(stmt_ptr),
            ctypes.byref(tail_ptr),
        ),
        sql,
    )
    if tail_ptr.value is None:
        offset = len(encoded)
    else:
        offset = min(max(tail_ptr.value - ctypes.addressof(buf), 0), len(encoded))
    tail = len(encoded[:offset].decode('utf-8', errors='ignore'))
    return stmt_ptr.value, tail


class Statement:
    """A compiled statement.

    `sql` is the text the engine actually compiled; for multi-statement input
    `tail` is the index into the original text where the next statement
    starts (len(original) when nothing is left).

    Iterating a Statement resets it and yields a Cursor per row. Each call to
    iter() restarts from the first row; a single iteration is single-pass and
    any Cursor it produced is only valid until the next row is fetched.

    A Statement keeps its Connection alive. Closing the Connection explicitly
    finalizes the Statement; using it afterwards raises ProgrammingError.
    """

    def __init__(self, connection, sql):
        handle, tail = _prepare(connection, sql)
        if handle is None:
            raise ProgrammingError("SQL text contains no statement", sql=sql)
        self._attach(connection, sql, handle, tail)

    @classmethod
    def _from_handle(cls, connection, sql, handle, tail):
        stmt = cls.__new__(cls)
        stmt._attach(connection, sql, handle, tail)
        return stmt

    def _attach(self, connection, sql, handle, tail):
        self._connection = connection
        self._lib = connection._lib
        self._handle = handle
        self.tail = tail
        self.sql = sql[:tail]
        self._state = StatementState.READY
        self._generation = 0
        self._column_count = None
        self._column_names = None
        connection._statements.add(self)
        logger.debug("Prepared statement %r", self.sql)

    @property
    def connection(self):
        return self._connection

    @property
    def state(self):
        return self._state

    @property
    def finalized(self):
        return self._handle is None

    def _require_handle(self):
        if self._handle is None:
            raise ProgrammingError("Statement is finalized", sql=self.sql)
        return self._handle

    def _current(self, generation):
        handle = self._require_handle()
        if generation != self._generation:
            raise ProgrammingError("Row is no longer current", sql=self.sql)
        return handle

    def step(self):
        """Advance to the next row. Returns True if a row is available."""
        handle = self._require_handle()
        self._generation += 1
        self._state = StatementState.FAILED
        code = self._connection._check(self._lib.sqlite3_step(handle), self.sql)
        if code == SQLITE_ROW:
            self._state = StatementState.ROW
            return True
        self._state = StatementState.DONE
        return False

    def reset(self):
        """Rewind to before the first row. Never raises for engine errors."""
        handle = self._require_handle()
        self._generation += 1
        res = self._lib.sqlite3_reset(handle)
        if res != SQLITE_OK:
            # sqlite3_reset repeats the error of the last failed step.
            logger.debug("Ignoring reset result %d for %r", res, self.sql)
        self._state = StatementState.READY

    @property
    def column_count(self):
        # Fixed once compiled.
        if self._column_count is None:
            self._column_count = int(self._lib.sqlite3_column_count(self._require_handle()))
        return self._column_count

    @property
    def column_names(self):
        if self._column_names is None:
            handle = self._require_handle()
            names = []
            for i in range(self.column_count):
                name_ptr = self._lib.sqlite3_column_name(handle, i)
                names.append(name_ptr.decode('utf-8', errors='replace') if name_ptr else "")
            self._column_names = names
        return list(self._column_names)

    def cursor(self):
        """Cursor over the current row; only valid right after step() returned True."""
        self._require_handle()
        if self._state is not StatementState.ROW:
            raise ProgrammingError("Statement is not positioned on a row", sql=self.sql)
        return Cursor(self)

    def __iter__(self):
        self.reset()
        while self.step():
            yield Cursor(self)

    def finalize(self):
        handle = getattr(self, "_handle", None)
        if handle is None:
            return
        self._handle = None
        self._generation += 1
        self._state = StatementState.FINALIZED
        self._connection._statements.discard(self)
        # The result repeats the last step error, which was already reported.
        self._lib.sqlite3_finalize(handle)
        logger.debug("Finalized statement %r", self.sql)

    close = finalize

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finalize()

    def __del__(self):
        self.finalize()

    def __str__(self):
        return self.sql

    def __repr__(self):
        return f"Statement({self.sql!r}, state={self._state.value})"


class Connection:
    """An open database.

    `flags` is an OpenFlags bitmask handed to sqlite3_open_v2 as is. Threading
    is whatever the engine's mode provides (see thread_safe() and the
    NOMUTEX/FULLMUTEX flags); this class adds no locking.
    """

    def __init__(self, path, flags=DEFAULT_OPEN_FLAGS):
        self._lib = load_library()
        self._db = None
        self._statements = weakref.WeakSet()
        self.path = os.fspath(path)
        self.flags = OpenFlags(flags)

        db_ptr = ctypes.c_void_p()
        res = self._lib.sqlite3_open_v2(
            self.path.encode('utf-8'), ctypes.byref(db_ptr), int(self.flags), None
        )
        if res != SQLITE_OK:
            # The handle is not usable for messages yet; report the generic
            # text for the code and release whatever the engine allocated.
            error = error_for_code(res, None)
            self._lib.sqlite3_close_v2(db_ptr.value)
            if error is None:
                error = OperationalError(f"Failed to open database (code: {res})", code=res)
            raise error
        self._db = db_ptr.value
        logger.debug("Opened %s with flags %s", self.path, self.flags)

    @property
    def closed(self):
        return self._db is None

    def _handle(self):
        if self._db is None:
            raise ProgrammingError("Connection closed")
        return self._db

    def _check(self, code, sql=None):
        """Raise the mapped error for `code`, otherwise return it unchanged."""
        return _check(code, self._db, sql)

    def prepare(self, sql):
        return Statement(self, sql)

    def statements(self, sql):
        """Prepare the statements of a multi-statement text one after another.

        Each Statement is prepared only when the previous one has been
        consumed from the generator; the caller finalizes them.
        """
        remaining = sql
        while remaining:
            handle, tail = _prepare(self, remaining)
            if handle is None:
                return
            yield Statement._from_handle(self, remaining, handle, tail)
            remaining = remaining[tail:]

    def executescript(self, sql):
        for stmt in self.statements(sql):
            with stmt:
                while stmt.step():
                    pass

    def close(self):
        db = getattr(self, "_db", None)
        if db is None:
            return
        for stmt in list(self._statements):
            stmt.finalize()
        self._db = None
        self._lib.sqlite3_close_v2(db)
        logger.debug("Closed %s", self.path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        self.close()


def connect(path, flags=DEFAULT_OPEN_FLAGS):
    return Connection(path, flags)
