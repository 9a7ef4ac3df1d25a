"""Delete every row from the Adapta database (schema is kept).

Usage: python scripts/reset_database.py --yes
"""
import argparse
import os
import shutil
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))

from server import config  # noqa: E402
from server.database import get_db, init_db  # noqa: E402

TABLES = ("quiz_results", "tasks", "plan_files", "plans", "mood_history", "users")


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--yes", action="store_true", help="actually delete everything")
    parser.add_argument("--keep-uploads", action="store_true", help="leave UPLOAD_DIR untouched")
    args = parser.parse_args(argv)

    if not args.yes:
        print(f"This deletes all data in {config.DB_PATH}. Re-run with --yes to confirm.")
        return 1

    init_db()
    db = get_db()
    for table in TABLES:
        count = db.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        db.execute(f"DELETE FROM {table}")
        print(f"  {table}: {count} rows deleted")
    db.commit()
    db.close()

    if not args.keep_uploads and os.path.isdir(config.UPLOAD_DIR):
        shutil.rmtree(config.UPLOAD_DIR)
        os.makedirs(config.UPLOAD_DIR, exist_ok=True)
        print(f"  uploads cleared: {config.UPLOAD_DIR}")

    print("--- RESET COMPLETE ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
