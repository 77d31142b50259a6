import os
import sys
from datetime import date, timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from clientpulse.core.db import SessionLocal
from clientpulse.core.security import hash_password
from clientpulse.models import Client, Deal, Reminder, User
from clientpulse.services.prioritization import create_prioritization
from clientpulse.services.priority import PrioritizationInput


def run() -> None:
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == "owner@demo.local").first():
            print("Seed already applied")
            return

        owner = User(email="owner@demo.local", first_name="Demo", last_name="Owner", password_hash=hash_password("demo1234"))
        db.add(owner)
        db.flush()

        acme = Client(owner_user_id=owner.id, name="Dana Reyes", company="Acme Logistics", source="Referral", email="dana@acme.example")
        bolt = Client(owner_user_id=owner.id, name="Sam Okafor", company="Bolt Fitness", source="Website", email="sam@bolt.example")
        cove = Client(owner_user_id=owner.id, name="Lee Park", company="Cove Dental", source="Cold call")
        db.add_all([acme, bolt, cove])
        db.flush()

        db.add_all(
            [
                Deal(owner_user_id=owner.id, client_id=acme.id, title="Fleet tracking rollout", amount=48000, stage="Proposal"),
                Deal(owner_user_id=owner.id, client_id=acme.id, title="Driver app licences", amount=12500, stage="Negotiation"),
                Deal(owner_user_id=owner.id, client_id=acme.id, title="Warehouse sensors", amount=9000, stage="Qualified"),
                Deal(owner_user_id=owner.id, client_id=bolt.id, title="Member portal", amount=7200, stage="Lead"),
                Deal(owner_user_id=owner.id, client_id=cove.id, title="Booking widget", amount=1800, stage="Closed"),
                Reminder(
                    owner_user_id=owner.id,
                    title="Send revised proposal",
                    due_date=date.today() + timedelta(days=2),
                    due_time="10:00",
                    priority="high",
                    type="email",
                    related_to=acme.name,
                ),
            ]
        )
        db.commit()

        create_prioritization(
            db,
            owner_id=owner.id,
            client=acme,
            data=PrioritizationInput(active_deals=["3+"], interaction_frequency=["6-9times"], pending_proposal=["yes"]),
        )
        create_prioritization(
            db,
            owner_id=owner.id,
            client=bolt,
            data=PrioritizationInput(active_deals=["1"], interaction_frequency=["1-2times"], who_initiated=["client"]),
        )
        print("Seed complete: owner@demo.local / demo1234")
    finally:
        db.close()


if __name__ == "__main__":
    run()
