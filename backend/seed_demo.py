"""Seed a demo user and credential, then print a bearer token for the API."""
import asyncio
import sys
from datetime import datetime

sys.path.insert(0, ".")
from wallet.auth.service import create_access_token
from wallet.credentials.repository import insert_credential
from wallet.database import async_session, create_tables
from wallet.models import User


async def seed(email: str):
    await create_tables()
    async with async_session() as db:
        user = User(email=email, full_name="Asha Verma")
        db.add(user)
        await db.commit()
        await db.refresh(user)

        credential = await insert_credential(
            db,
            user.id,
            title="Bachelor of Science in Computer Science",
            type="degree",
            category="degree",
            issuer="du.ac.in",
            issuer_name="University of Delhi",
            issuer_domain="du.ac.in",
            subject="Asha Verma",
            issued_date=datetime(2024, 6, 30),
            payload={
                "student_name": "Asha Verma",
                "degree": "B.Sc. Computer Science",
                "university": "University of Delhi",
                "year": "2024",
                "grade": "First Division",
                "email": "asha.verma@example.com",
                "registration_number": "DU2020CS0412",
                "dob": "2002-03-14",
            },
        )

        print(f"Seeded user {user.id} with credential {credential.id}")
        print(f"Bearer token: {create_access_token(str(user.id))}")


if __name__ == "__main__":
    email = sys.argv[1] if len(sys.argv) > 1 else "demo@example.com"
    asyncio.run(seed(email))
