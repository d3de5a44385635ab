from __future__ import annotations
from datetime import datetime, timedelta
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import AuthSession
from .store import LoginAttemptLog


def purge_stale_sessions(db: Session, *, days: int = 7) -> int:
	threshold = datetime.utcnow() - timedelta(days=days)
	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	db.commit()
	return res.rowcount or 0


def run_maintenance(db: Session, *, login_attempt_limit: int = 100) -> int:
	# Sessions idle for a week are dropped; the login log is re-capped in case the limit was lowered
	removed = purge_stale_sessions(db)
	removed += LoginAttemptLog(db, limit=login_attempt_limit).trim()
	return removed
