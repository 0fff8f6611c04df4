"""Example: Basic dlsqlite usage.

dlsqlite binds the system SQLite library at run time. To use a specific build:
    DLSQLITE_NATIVE_LIB=/path/to/libsqlite3.so python example.py
"""

import os
import tempfile
import dlsqlite


def main():
    print(f"SQLite {dlsqlite.lib_version()} ({dlsqlite.thread_safe().name})")

    # Create a temporary database file for this example.
    db_path = os.path.join(tempfile.gettempdir(), "dlsqlite_example.db")

    with dlsqlite.connect(db_path) as conn:
        # Create a table and insert a few rows in one script.
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id    INTEGER PRIMARY KEY,
                name  TEXT NOT NULL,
                email TEXT UNIQUE,
                avatar BLOB
            );
            DELETE FROM users;
            INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com');
            INSERT INTO users (name, email) VALUES ('Bob', 'bob@example.com');
            INSERT INTO users (name, email, avatar) VALUES ('Carol', 'carol@example.com', X'89504E47');
        """)

        # Query all users. Each row is a Cursor of dynamically typed Values.
        with conn.prepare("SELECT id, name, email, avatar FROM users ORDER BY id") as stmt:
            print("Columns:", ", ".join(stmt.column_names))
            print("All users:")
            for cursor in stmt:
                avatar = cursor[3]
                kind = avatar.type.name
                print(f"  id={cursor[0].int}  name={cursor[1].string}  email={cursor[2].string}  avatar={kind}")

            # Iterating again starts over from the first row.
            count = sum(1 for _ in stmt)
            print(f"\nTotal users: {count}")

        # Violating a constraint surfaces as a mapped exception.
        with conn.prepare("INSERT INTO users (name, email) VALUES ('Eve', 'bob@example.com')") as stmt:
            try:
                stmt.step()
            except dlsqlite.IntegrityError as e:
                print(f"\nRejected: {e.message} (code: {e.code})")

        # A multi-statement text is prepared one statement at a time.
        for stmt in conn.statements("SELECT count(*) FROM users; SELECT max(id) FROM users;"):
            with stmt:
                for cursor in stmt:
                    print(f"{stmt.sql!r} -> {cursor[0].value}")

    # Clean up.
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass

    print("\nDone.")


if __name__ == "__main__":
    main()
