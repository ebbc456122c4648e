import argparse
import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.db import build_engine
from app.crm.models import Base, User


@contextmanager
def _session_scope(database_url: str, *, create_tables: bool = False):
    engine = build_engine(database_url)
    if create_tables:
        Base.metadata.create_all(bind=engine)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_only(*, database_url: str | None = None, create_tables: bool = False) -> None:
    """
    Seed the admin user in an idempotent way.
    Does NOT overwrite an existing user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@smartcrm.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///crm.db").strip()

    with _session_scope(db_url, create_tables=create_tables) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    ap = argparse.ArgumentParser(description="Seed the Smart CRM admin user.")
    ap.add_argument("--database-url", default=None)
    ap.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables directly from the models (local SQLite only; use Alembic elsewhere).",
    )
    args = ap.parse_args()
    seed_only(database_url=args.database_url, create_tables=args.create_tables)


if __name__ == "__main__":
    main()
