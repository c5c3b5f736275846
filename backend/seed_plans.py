#!/usr/bin/env python3
"""Create or update the subscription plans (run after `alembic upgrade head`)"""

import sys

from sqlmodel import Session

from marquee.database import engine, init_db
from marquee.models.plan import Plan

PLANS = [
    {"id": "plan_individual", "name": "Individual", "screens": 1, "price_monthly": 19.90, "price_yearly": 199.00},
    {"id": "plan_duo", "name": "Duo", "screens": 2, "price_monthly": 29.90, "price_yearly": 299.00},
    {"id": "plan_familia", "name": "Família", "screens": 4, "price_monthly": 39.90, "price_yearly": 399.00},
]


def seed_plans(session: Session) -> int:
    """Upsert PLANS by id; returns the number of plans written"""
    for data in PLANS:
        plan = session.get(Plan, data["id"])
        if plan is None:
            plan = Plan(**data)
        else:
            for key, value in data.items():
                setattr(plan, key, value)
        plan.active = True
        session.add(plan)
        print(f"✓ {plan.name} ({plan.id})")
    session.commit()
    return len(PLANS)


if __name__ == "__main__":
    init_db()
    with Session(engine) as session:
        count = seed_plans(session)
    print(f"Seeded {count} plans")
    sys.exit(0)
