import asyncio
from datetime import date, datetime, timedelta, timezone

from accounting_tutor.cleanup import purge_stale_sessions, run_maintenance
from accounting_tutor.models import AuthSession
from accounting_tutor.schemas import Solution
from accounting_tutor.state import pwd_context
from accounting_tutor.store import (
	DAILY_CHALLENGE_KEY,
	HISTORY_KEY,
	DailyChallengeCache,
	HistoryStore,
	KeyValueStore,
	LoginAttemptLog,
	PreferenceStore,
)


def _solution(n):
	return Solution(analysis=f"a{n}", application=f"b{n}", result=f"c{n}", explanation=f"d{n}")


def test_history_is_newest_first_and_preserves_ids(db):
	store = HistoryStore(db, "sara")
	base = 1_700_000_000_000
	pushed = [store.add(f"problem {n}", _solution(n), timestamp_ms=base + n) for n in range(5)]
	items = HistoryStore(db, "sara").items()
	assert [i.id for i in items] == [p.id for p in reversed(pushed)]
	assert [i.timestamp for i in items] == [base + n for n in reversed(range(5))]
	assert items[0].solution.analysis == "a4"


def test_history_get_is_non_destructive_and_clear_empties(db):
	store = HistoryStore(db, "sara")
	item = store.add("p", _solution(1), timestamp_ms=1_700_000_000_000)
	assert store.get(item.id) == item
	assert store.get(item.id) == item
	assert store.get("missing") is None
	store.clear()
	assert store.items() == []


def test_history_is_scoped_per_user(db):
	HistoryStore(db, "sara").add("p", _solution(1))
	assert HistoryStore(db, "omar").items() == []


def test_corrupt_history_reads_as_empty(db):
	KeyValueStore(db, "sara").set_json(HISTORY_KEY, [{"id": 1}])
	assert HistoryStore(db, "sara").items() == []


def test_login_attempts_capped_newest_first(db):
	log = LoginAttemptLog(db, limit=3)
	start = datetime(2026, 1, 1, tzinfo=timezone.utc)
	for n in range(5):
		log.record(f"student{n}", "pw", at=start + timedelta(minutes=n))
	attempts = log.attempts()
	assert [a.username for a in attempts] == ["student4", "student3", "student2"]
	assert attempts[0].password_hash != "pw"
	assert pwd_context.verify("pw", attempts[0].password_hash)
	log.clear()
	assert log.attempts() == []


def test_daily_challenge_cached_per_day(db):
	calls = []

	async def generate():
		calls.append(1)
		return {"question": f"Q{len(calls)}", "idealAnswer": f"A{len(calls)}"}

	cache = DailyChallengeCache(db, "sara")
	day = date(2026, 3, 1)
	first = asyncio.run(cache.current(generate, today=day))
	again = asyncio.run(cache.current(generate, today=day))
	assert first == again
	assert (again.question, again.ideal_answer) == ("Q1", "A1")
	assert len(calls) == 1

	rolled = asyncio.run(cache.current(generate, today=day + timedelta(days=1)))
	assert rolled.date == "2026-03-02"
	assert rolled.question == "Q2"
	assert len(calls) == 2


def test_corrupt_daily_challenge_is_regenerated(db):
	kv = KeyValueStore(db, "sara")
	kv.set_json(DAILY_CHALLENGE_KEY, {"date": "2026-03-01"})

	async def generate():
		return {"question": "fresh", "idealAnswer": "answer"}

	challenge = asyncio.run(DailyChallengeCache(db, "sara").current(generate, today=date(2026, 3, 1)))
	assert challenge.question == "fresh"

	row = kv._row(DAILY_CHALLENGE_KEY)
	row.value_json = "{not json"
	db.commit()
	assert DailyChallengeCache(db, "sara").cached() is None


def test_preferences_default_and_update(db):
	store = PreferenceStore(db, "sara", default_language="ar")
	assert store.load().model_dump() == {"theme": "light", "language": "ar"}
	store.save(theme="dark")
	assert PreferenceStore(db, "sara").load().theme == "dark"
	assert store.save(language="en").language == "en"


def test_maintenance_purges_idle_sessions_and_trims_log(db):
	old = datetime.utcnow() - timedelta(days=8)
	db.add(AuthSession(session_id="old", username="sara", role="student", last_activity_at=old))
	db.add(AuthSession(session_id="new", username="omar", role="student"))
	db.commit()
	assert purge_stale_sessions(db) == 1
	assert db.get(AuthSession, "new") is not None

	log = LoginAttemptLog(db, limit=10)
	for n in range(6):
		log.record(f"s{n}", "pw")
	assert run_maintenance(db, login_attempt_limit=4) == 2
	assert len(LoginAttemptLog(db).attempts()) == 4
