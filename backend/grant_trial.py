#!/usr/bin/env python3
"""
Give new accounts their Duo trial.

The auth provider creates users; its post-signup hook runs this with the new
account's email. Accounts that already used a trial are skipped.

Usage: python grant_trial.py user@example.com [...]
"""

import sys
from typing import Iterable

from sqlmodel import Session, select

from marquee.database import engine, init_db
from marquee.models.user import User
from marquee.services.trial import assign_trial


def grant_trials(session: Session, emails: Iterable[str]) -> int:
    """Assign the trial to each known email; returns how many were granted"""
    granted = 0
    for email in emails:
        email = email.strip().lower()
        user = session.exec(select(User).where(User.email == email)).first()
        if user is None:
            print(f"✗ {email}: no such user")
            continue
        if assign_trial(session, user):
            granted += 1
            print(f"✓ {email}: trial until {user.trial_ends_at.isoformat()}")
        else:
            print(f"- {email}: not granted")
    return granted


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)
    init_db()
    with Session(engine) as session:
        count = grant_trials(session, sys.argv[1:])
    print(f"Granted {count} trial(s)")
    sys.exit(0)
