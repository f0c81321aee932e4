#!/usr/bin/env python3
"""
Quick checks so the notifier can start. Run from repo root or backend/:
  python backend/scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        print("WARN backend/.env missing; using process environment (DATABASE_URL, EXPO_ACCESS_TOKEN, ...)")
    else:
        print("OK  .env exists")

    # 2) DB connection and tables
    try:
        from sqlalchemy import inspect, text

        from notifier.db.session import engine
        from notifier.db.tables import ALL_TABLE_NAMES

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = sorted(set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names()))
        if missing:
            errors.append(f"Tables missing: {missing}. Run: cd backend && alembic upgrade head")
            print("FAIL Tables missing:", missing)
        else:
            print("OK  Notification tables present")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) App import (catches missing deps, bad imports, template registry gaps)
    try:
        from notifier.main import app  # noqa: F401
        from notifier.services.templates import TEMPLATES

        print(f"OK  App import (notifier.main), {len(TEMPLATES)} notification templates")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    # 4) Push gateway settings
    from notifier.config import settings

    print(f"OK  Expo push URL {settings.expo_push_url} (batch {settings.push_batch_size}, retries {settings.push_max_retries})")
    if not settings.notify_webhook_secret:
        print("WARN NOTIFY_WEBHOOK_SECRET not set; /send-notification accepts unauthenticated calls")

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: cd backend && uvicorn notifier.main:app --reload --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
