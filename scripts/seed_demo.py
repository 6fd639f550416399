"""
Seed the demo tenant and print a bearer token for its admin.
Run from the repository root with .env loaded.

Usage:
  python scripts/seed_demo.py            # tenant "demo"
  python scripts/seed_demo.py acme       # tenant "acme"
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.security import create_access_token
from app.db.init_db import init_db, DEMO_TENANT_ID
from app.db.session import SessionLocal


def main():
    tenant_id = sys.argv[1] if len(sys.argv) > 1 else DEMO_TENANT_ID
    db = SessionLocal()
    try:
        admin = init_db(db, tenant_id)
        token = create_access_token({"sub": str(admin.id), "tenant_id": tenant_id, "role": admin.role})
        print(f"Tenant: {tenant_id}")
        print(f"Admin employee_id: {admin.id}")
        print(f"Bearer token: {token}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
