"""Seed the development database with an admin and a president account."""

import os

from nexo.backend.src.db import get_engine, session_scope
from nexo.backend.src.models.base import Base
from nexo.backend.src.services.seed import seed_development_users


def main() -> None:
    """Create tables (if needed) and ensure the demo accounts exist."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        auth0_sub = os.environ.get("AUTH0_DEMO_SUB")
        result = seed_development_users(session, admin_auth0_sub=auth0_sub)
        session.flush()

        print("Development data ready!")
        for label, user, created in (
            ("Admin", result.admin, result.admin_created),
            ("President", result.president, result.president_created),
        ):
            state = "created" if created else "unchanged"
            print(
                f"{label} ({state}): {user.name} <{user.email}> "
                f"[{user.display_id}, role={user.role}]"
            )
        print()
        if auth0_sub:
            print(f"Linked Auth0 subject: {auth0_sub}")
        else:
            print("Set AUTH0_DEMO_SUB to link an Auth0 subject to the admin during seeding.")


if __name__ == "__main__":
    main()
