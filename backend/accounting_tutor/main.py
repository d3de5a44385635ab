import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .db import Base, engine, get_db
from .cleanup import run_maintenance
from .errors import FeatureBusyError, GenerationError, TutorError, ValidationError, user_message
from .settings import settings
from .state import build_app_state
from .routers import auth
from .routers import admin
from .routers import preferences
from .routers import solve
from .routers import learn
from .routers import quiz
from .routers import challenge
from .routers import speech

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	Base.metadata.create_all(bind=engine)
	try:
		_maintenance_once()
	except Exception:
		logger.exception("startup maintenance failed")
	app.state.maintenance_task = asyncio.create_task(_maintenance_watcher())
	try:
		yield
	finally:
		app.state.maintenance_task.cancel()
		# Stops any live read-aloud stream and releases the audio device
		app.state.tutor.close()


app = FastAPI(title="Accounting Tutor API", lifespan=lifespan)
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(preferences.router)
app.include_router(solve.router)
app.include_router(learn.router)
app.include_router(quiz.router)
app.include_router(challenge.router)
app.include_router(speech.router)

# Read settings once; routers reach this through the get_app_state dependency
app.state.tutor = build_app_state(settings)


def _lang(request: Request) -> str:
	return getattr(request.state, "lang", None) or settings.default_language


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
	return JSONResponse(status_code=400, content={"detail": str(exc), "field": exc.field})


@app.exception_handler(FeatureBusyError)
async def busy_error_handler(request: Request, exc: FeatureBusyError):
	return JSONResponse(status_code=409, content={"detail": str(exc), "feature": exc.feature})


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
	# The cause was logged at the generation boundary; never echo it
	return JSONResponse(status_code=502, content={"detail": user_message(_lang(request)), "feature": exc.feature})


@app.exception_handler(TutorError)
async def tutor_error_handler(request: Request, exc: TutorError):
	logger.warning("request failed: %s", exc)
	return JSONResponse(status_code=502, content={"detail": user_message(_lang(request))})


@app.get("/info")
def root():
	tutor = app.state.tutor
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"audio_output": tutor.playback is not None,
	}


def _maintenance_once() -> None:
	db = next(get_db())
	try:
		removed = run_maintenance(db, login_attempt_limit=settings.login_attempt_limit)
		if removed:
			logger.info("maintenance removed %d stale records", removed)
	finally:
		db.close()


async def _maintenance_watcher():
	# Startup already ran one pass; repeat daily
	while True:
		await asyncio.sleep(24 * 60 * 60)
		try:
			_maintenance_once()
		except Exception:
			logger.exception("daily maintenance failed")


