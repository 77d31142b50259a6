import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from clientpulse.core.db import SessionLocal
from clientpulse.core.security import MIN_PASSWORD_LENGTH, hash_password
from clientpulse.models import User


def run(email: str, password: str, first_name: str | None, last_name: str | None):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower().strip()).first()
        if not user:
            user = User(
                email=email.lower().strip(),
                first_name=first_name,
                last_name=last_name,
                password_hash=hash_password(password),
            )
            db.add(user)
        else:
            user.password_hash = hash_password(password)
        db.commit()
        print(f"User ready: {user.email}")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--first-name")
    parser.add_argument("--last-name")
    args = parser.parse_args()
    run(args.email, args.password, args.first_name, args.last_name)
