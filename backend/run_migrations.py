"""Simple migration runner for SQLite using provided SQL files in migrations/"""
from pathlib import Path
import sqlite3

BASE = Path(__file__).parent
DB_PATH = BASE / "app.db"
MIGRATIONS = sorted((BASE / "migrations").glob("*.sql"))

def run(db_path: Path = DB_PATH):
    """Execute SQL migration files against the local SQLite database.

    The function applies every `migrations/*.sql` file in lexical
    order. The statements are idempotent, so running it twice is safe.
    """
    print("Using database:", db_path)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for m in MIGRATIONS:
            print("Applying:", m.name)
            cur.executescript(m.read_text(encoding="utf-8"))
        conn.commit()
    finally:
        conn.close()
    print("Migrations applied.")

if __name__ == '__main__':
    run()
