import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.portal.models import Permission, Role, User  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

PERMISSIONS = (
    ("customers.view", "Customers: view"),
    ("customers.edit", "Customers: edit"),
    ("customers.delete", "Customers: delete"),
    ("customers.reset_password", "Customers: reset password"),
)


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    hash_method = (os.environ.get("PASSWORD_HASH_METHOD") or "scrypt").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///portal.db").strip()

    with script_session(db_url) as s:
        def ensure_perm(key: str, name: str) -> Permission:
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, name=name)
                s.add(p)
            return p

        perms = [ensure_perm(key, name) for key, name in PERMISSIONS]

        role_admin = s.query(Role).filter(Role.key == "admin").one_or_none()
        if not role_admin:
            role_admin = Role(key="admin", name="Administrator")
            s.add(role_admin)
        for p in perms:
            if p not in role_admin.permissions:
                role_admin.permissions.append(p)

        # Brokers can look customers up but not change them.
        role_broker = s.query(Role).filter(Role.key == "broker").one_or_none()
        if not role_broker:
            role_broker = Role(key="broker", name="Broker")
            s.add(role_broker)
        view = perms[0]
        if view not in role_broker.permissions:
            role_broker.permissions.append(view)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                password_hash=generate_password_hash(admin_password, method=hash_method),
                is_active=True,
            )
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
