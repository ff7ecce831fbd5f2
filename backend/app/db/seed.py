import asyncio
import os

from app.core.users.models import AccountRole
from app.core.users.service import create_user, get_user_by_email
from app.db.session import get_session

SEED_ACCOUNTS = [
    (AccountRole.ADMIN, "SEED_ADMIN_EMAIL", "admin@wildpark.local", "Park Administrator"),
    (AccountRole.CALL_OPERATOR, "SEED_CALL_OPERATOR_EMAIL", "operator@wildpark.local", "Call Operator"),
    (AccountRole.EMERGENCY_OFFICER, "SEED_EMERGENCY_OFFICER_EMAIL", "officer@wildpark.local", "Emergency Officer"),
    (AccountRole.VET, "SEED_VET_EMAIL", "vet@wildpark.local", "Veterinarian"),
    (AccountRole.WILDLIFE_OFFICER, "SEED_WILDLIFE_OFFICER_EMAIL", "ranger@wildpark.local", "Wildlife Officer"),
]


async def seed() -> None:
    async with get_session() as db:
        for role, env_key, default_email, full_name in SEED_ACCOUNTS:
            email = os.getenv(env_key, default_email)
            user = await get_user_by_email(db, email)
            if not user:
                user = await create_user(db, email=email, role=role, full_name=full_name)
                print(f"✅  {role.value}: {user.email} ({user.id})")
            else:
                print(f"⏭️   {role.value} exists: {user.email}")

    print("Done.")


if __name__ == "__main__":
    asyncio.run(seed())
