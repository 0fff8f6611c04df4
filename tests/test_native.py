import ctypes

import pytest
from dlsqlite import native


def test_load_library_is_cached():
    lib = native.load_library()
    assert native.load_library() is lib
    assert lib.sqlite3_libversion_number() > 0

def test_signatures_are_declared():
    lib = native.load_library()
    assert lib.sqlite3_prepare_v2.restype is ctypes.c_int
    assert len(lib.sqlite3_prepare_v2.argtypes) == 5
    assert lib.sqlite3_value_int64.restype is ctypes.c_int64
    assert lib.sqlite3_value_double.restype is ctypes.c_double
    assert lib.sqlite3_errstr.restype is ctypes.c_char_p

@pytest.mark.parametrize("platform, expected", [
    ("linux", "libsqlite3.so"),
    ("darwin", "libsqlite3.dylib"),
    ("win32", "sqlite3.dll"),
])
def test_library_names(platform, expected):
    assert native.library_names(platform)[0] == expected

def test_env_var_overrides_search(monkeypatch, tmp_path):
    missing = str(tmp_path / "libnope.so")
    monkeypatch.setenv(native.LIB_PATH_ENV, missing)
    monkeypatch.setattr(native, "_lib", None)
    with pytest.raises(native.LibraryLoadError) as excinfo:
        native.load_library()
    assert missing in str(excinfo.value)
    assert native._lib is None

def test_missing_symbol_is_a_load_error():
    class Library:
        pass

    with pytest.raises(native.LibraryLoadError, match="sqlite3_nonexistent"):
        native._bind(Library(), "sqlite3_nonexistent", ctypes.c_int)

def test_open_flags_values():
    flags = native.OpenFlags
    assert int(native.DEFAULT_OPEN_FLAGS) == 0x6
    assert int(flags.READONLY) == 1
    assert int(flags.URI) == 0x40
    assert int(flags.NOMUTEX | flags.SHAREDCACHE) == 0x28000
    assert int(flags.FULLMUTEX | flags.PRIVATECACHE) == 0x50000

def test_value_type_tags():
    assert [t.value for t in native.ValueType] == [1, 2, 3, 4, 5]
    assert native.ThreadSafe(2) is native.ThreadSafe.SERIALIZED
