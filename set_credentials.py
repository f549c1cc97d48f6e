import sys
from dataclasses import replace

from gascert import create_app
from gascert.services.store import get_store
from gascert.utils.passwords import hash_password, validate_password

if len(sys.argv) != 3:
    print("Usage: python set_credentials.py USERNAME PASSWORD")
    sys.exit(2)

USERNAME, PASSWORD = sys.argv[1].strip(), sys.argv[2]

ok, msg = validate_password(PASSWORD)
if not USERNAME or not ok:
    print("❌ Invalid credentials:", msg or "username is required")
    sys.exit(1)

app = create_app()

with app.app_context():
    store = get_store()
    settings = store.settings

    print("🔐 Updating operator credentials...")

    store.update_settings(
        replace(
            settings,
            auth=replace(
                settings.auth,
                username=USERNAME,
                password_hash=hash_password(PASSWORD),
            ),
        )
    )

    print("✅ Operator set:", USERNAME)
