import pytest
import dlsqlite

@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")

@pytest.fixture
def conn(db_path):
    conn = dlsqlite.connect(db_path)
    yield conn
    conn.close()
