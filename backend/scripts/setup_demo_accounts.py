from dotenv import load_dotenv
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

load_dotenv(".env")

import json
import logging

from app.core.database import Base, SessionLocal, engine
from app.models import media_asset, message, profile, security_audit_log, ticket, user_role  # noqa: F401
from app.services.demo_accounts import setup_demo_accounts
from app.services.supabase_admin import SupabaseAdminError, get_auth_admin


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = setup_demo_accounts(db, get_auth_admin())
    except SupabaseAdminError as exc:
        print(json.dumps({"error": exc.message}), file=sys.stderr)
        return 1
    finally:
        db.close()
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
