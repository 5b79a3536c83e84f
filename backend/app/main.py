from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from .api.recipes import router as recipes_router
from .api.session import router as session_router
from .api.websocket import router as ws_router
from .core.config import get_settings
from .core.runtime import get_runtime
from .core.state_machine import InvalidTransitionError, NoActiveSessionError
from .services.saved_recipes import RecipeNotFoundError
from .services.sheets_client import SheetsError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime = app.dependency_overrides.get(get_runtime, get_runtime)()
    session = runtime.sessions.resume_alarms()
    if session is not None:
        log.info(f"Resumed '{session.recipe.name}' at step {session.current_step_index}")
    yield
    cancel_all = getattr(runtime.scheduler, "cancel_all", None)
    if cancel_all is not None:
        await cancel_all()


app = FastAPI(title="doughdough", version="0.1.0", description="Step-by-step recipe timer", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(NoActiveSessionError)
@app.exception_handler(RecipeNotFoundError)
async def not_found_handler(_: Request, exc: Exception):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(_: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"error": str(exc)})


@app.exception_handler(SheetsError)
async def sheets_error_handler(_: Request, exc: SheetsError):
    return JSONResponse(status_code=502, content={"error": str(exc)})


app.include_router(session_router)
app.include_router(recipes_router)
app.include_router(ws_router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "message": "doughdough API is running", "data_dir": str(settings.data_dir)}
