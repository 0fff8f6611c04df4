import pytest
import dlsqlite
from dlsqlite import native


def test_non_error_codes():
    for code in (dlsqlite.SQLITE_OK, dlsqlite.SQLITE_ROW, dlsqlite.SQLITE_DONE):
        assert dlsqlite.error_for_code(code, None) is None

@pytest.mark.parametrize("code, cls", [
    (dlsqlite.SQLITE_ERROR, dlsqlite.OperationalError),
    (dlsqlite.SQLITE_BUSY, dlsqlite.OperationalError),
    (dlsqlite.SQLITE_CANTOPEN, dlsqlite.OperationalError),
    (dlsqlite.SQLITE_INTERNAL, dlsqlite.InternalError),
    (dlsqlite.SQLITE_CORRUPT, dlsqlite.DatabaseError),
    (dlsqlite.SQLITE_TOOBIG, dlsqlite.DataError),
    (dlsqlite.SQLITE_CONSTRAINT, dlsqlite.IntegrityError),
    (dlsqlite.SQLITE_MISUSE, dlsqlite.ProgrammingError),
    # SQLITE_CONSTRAINT_UNIQUE: extended codes map by their primary code.
    (2067, dlsqlite.IntegrityError),
    (999, dlsqlite.DatabaseError),
])
def test_error_classes(code, cls):
    err = dlsqlite.error_for_code(code, None, "SELECT 1")
    assert type(err) is cls
    assert isinstance(err, dlsqlite.Error)
    assert err.code == code
    assert err.sql == "SELECT 1"
    assert err.message

def test_generic_message_without_connection():
    err = dlsqlite.error_for_code(dlsqlite.SQLITE_BUSY, None)
    assert err.message == "database is locked"
    assert str(err) == "database is locked"

def test_prepare_error_includes_sql_and_code(conn):
    with pytest.raises(dlsqlite.OperationalError) as excinfo:
        conn.prepare("SELEC 1")

    err = excinfo.value
    assert err.code == dlsqlite.SQLITE_ERROR
    assert err.sql == "SELEC 1"
    assert "syntax error" in err.message

    msg = str(err)
    assert "Context:" in msg
    assert "native_code" in msg
    assert "\"sql\": \"SELEC 1\"" in msg

def test_connection_scoped_message(conn):
    with pytest.raises(dlsqlite.OperationalError) as excinfo:
        conn.prepare("SELECT * FROM missing_table")
    assert "no such table: missing_table" in excinfo.value.message

def test_check_returns_informational_codes(conn):
    assert conn._check(dlsqlite.SQLITE_ROW) == dlsqlite.SQLITE_ROW
    assert conn._check(dlsqlite.SQLITE_DONE) == dlsqlite.SQLITE_DONE
    with pytest.raises(dlsqlite.IntegrityError):
        conn._check(dlsqlite.SQLITE_CONSTRAINT, "INSERT")

def test_library_load_error_is_not_a_database_error():
    assert issubclass(native.LibraryLoadError, RuntimeError)
    assert not issubclass(native.LibraryLoadError, dlsqlite.Error)
