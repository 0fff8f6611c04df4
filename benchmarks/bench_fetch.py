import dlsqlite
import time
import os

def run_benchmark():
    db_path = "bench_fetch.db"
    if os.path.exists(db_path):
        os.remove(db_path)

    conn = dlsqlite.connect(db_path)

    print("Setting up data...")
    conn.executescript("CREATE TABLE bench (id INTEGER, val TEXT, f REAL)")

    count = 100000
    start_time = time.perf_counter()
    conn.executescript(
        "INSERT INTO bench "
        "WITH RECURSIVE seq(i) AS (SELECT 0 UNION ALL SELECT i + 1 FROM seq WHERE i < %d) "
        "SELECT i, 'value_' || i, i * 1.0 FROM seq" % (count - 1)
    )
    end_time = time.perf_counter()
    print(f"Insert {count} rows: {end_time - start_time:.4f}s")

    conn.close()
    conn = dlsqlite.connect(db_path)

    # Copy every row out through the dynamically typed accessor.
    print("Benchmarking row()...")
    stmt = conn.prepare("SELECT * FROM bench")
    start_time = time.perf_counter()
    rows = [c.row() for c in stmt]
    end_time = time.perf_counter()
    print(f"row() {count} rows: {end_time - start_time:.4f}s")
    assert len(rows) == count

    # Typed accessors skip the type dispatch.
    print("Benchmarking typed accessors...")
    start_time = time.perf_counter()
    total = 0
    for c in stmt:
        total += c[0].int
        c[1].string
        c[2].double
    end_time = time.perf_counter()
    print(f"Typed {count} rows: {end_time - start_time:.4f}s")
    assert total == count * (count - 1) // 2

    stmt.finalize()
    conn.close()
    os.remove(db_path)

if __name__ == "__main__":
    run_benchmark()
