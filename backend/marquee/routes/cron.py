"""
Cron API Routes
Maintenance jobs triggered by an external scheduler with Bearer CRON_SECRET.
"""

import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from marquee.auth import require_cron
from marquee.database import get_session
from marquee.services.family import expire_family_invites
from marquee.services.trial import expire_trials
from marquee.utils.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_cron)])


@router.post("/cron/expire-invites")
def run_expire_invites(session: Session = Depends(get_session)):
    expired_count = expire_family_invites(session)
    logger.info(f"[Cron] Expired invites: {expired_count}")
    return {"success": True, "expiredCount": expired_count, "timestamp": to_iso(utcnow())}


@router.post("/cron/expire-trials")
def run_expire_trials(session: Session = Depends(get_session)):
    expired_count = expire_trials(session)
    logger.info(f"[Cron] Expired trials: {expired_count}")
    return {"success": True, "expiredCount": expired_count, "timestamp": to_iso(utcnow())}
