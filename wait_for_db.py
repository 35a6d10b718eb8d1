import os, time

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from app.core.config import settings

timeout_s = int(os.getenv("DB_WAIT_TIMEOUT", "60"))
start = time.time()
last_err = None

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
print(f"[wait_for_db] Waiting for database at {engine.url.render_as_string(hide_password=True)} (timeout={timeout_s}s)")
while True:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("[wait_for_db] Database is ready.")
        break
    except OperationalError as e:
        last_err = e
        if time.time() - start > timeout_s:
            print(f"[wait_for_db] Timed out waiting for DB. Last error: {last_err}")
            raise
        time.sleep(1)
engine.dispose()
