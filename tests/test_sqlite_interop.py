import sqlite3

import dlsqlite


def _make_sqlite_source(path: str) -> None:
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE parent (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
        conn.execute(
            "CREATE TABLE child (id INTEGER PRIMARY KEY, parent_id INTEGER REFERENCES parent(id), payload BLOB, score REAL)"
        )
        conn.execute("INSERT INTO parent VALUES (1, 'p1')")
        conn.execute("INSERT INTO parent VALUES (2, 'p2')")
        conn.execute("INSERT INTO child VALUES (10, 1, ?, ?)", (sqlite3.Binary(b"\x00\x01\x02"), 0.5))
        conn.execute("INSERT INTO child VALUES (11, 2, ?, NULL)", (sqlite3.Binary(b"hello"),))
        conn.commit()
    finally:
        conn.close()


def test_reads_file_written_by_stdlib_client(tmp_path):
    path = str(tmp_path / "src.sqlite")
    _make_sqlite_source(path)

    with dlsqlite.connect(path, dlsqlite.OpenFlags.READONLY) as conn:
        with conn.prepare(
            "SELECT child.id, parent.name, payload, score FROM child "
            "JOIN parent ON parent.id = child.parent_id ORDER BY child.id"
        ) as stmt:
            assert stmt.column_names == ["id", "name", "payload", "score"]
            rows = [c.row() for c in stmt]

    assert rows == [
        (10, "p1", b"\x00\x01\x02", 0.5),
        (11, "p2", b"hello", None),
    ]


def test_stdlib_client_reads_our_writes(tmp_path):
    path = str(tmp_path / "dst.sqlite")
    with dlsqlite.connect(path) as conn:
        conn.executescript("""
            CREATE TABLE items (id INTEGER PRIMARY KEY, label TEXT, data BLOB);
            INSERT INTO items VALUES (1, 'one', X'01');
            INSERT INTO items VALUES (2, 'two', NULL);
        """)

    other = sqlite3.connect(path)
    try:
        rows = other.execute("SELECT id, label, data FROM items ORDER BY id").fetchall()
    finally:
        other.close()
    assert rows == [(1, "one", b"\x01"), (2, "two", None)]
