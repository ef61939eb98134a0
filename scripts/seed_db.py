from __future__ import annotations

import importlib

from dotenv import load_dotenv

from attendance_portal.config import get_settings_module
from attendance_portal.database.bootstrap import DEMO_USERS, ensure_demo_users


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_users(db_config)
    print(f"OK: Seeded {len(DEMO_USERS)} demo users -> {db_config.get('database')}")
    for name, email, role, password in DEMO_USERS:
        print(f"  {role:<8} {email} / {password}")


if __name__ == "__main__":
    main()
