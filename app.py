import json
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import route_paths
import routes.routes_board as routes_board
import routes.routes_task as routes_task
import services.app_config_service as app_config_service
import services.app_wiring_service as app_wiring_service
import services.db_schema_service as db_schema_service
import services.http_guard_service as http_guard_service
import services.http_middleware_service as http_middleware_service
import services.metrics_service as metrics_service
import services.session_service as session_service
import services.task_redirect_service as task_redirect_service
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates


@asynccontextmanager
async def app_lifespan(_: FastAPI):
    initialize_sqlite()
    yield


app = FastAPI(title=app_config_service.APP_NAME, lifespan=app_lifespan)
DB_PATH = app_config_service.DB_PATH
BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / 'templates'))
DEFAULT_BODY_LIMIT_BYTES = app_config_service.BODY_LIMIT_BYTES
SESSIONLESS_PATHS = {route_paths.HEALTH, route_paths.METRICS}
LOGGER = logging.getLogger('taskboard')
if not LOGGER.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter('%(message)s'))
    LOGGER.addHandler(_handler)
LOGGER.setLevel(logging.INFO)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _log_event(event: str, **fields: object) -> None:
    payload = {'event': event, **fields, 'ts': utc_now_iso()}
    try:
        LOGGER.info(json.dumps(payload, separators=(',', ':'), default=str))
    except Exception:
        LOGGER.info(str(payload))


def _db_path() -> str:
    return DB_PATH


def _resolve_startup_db_path() -> str:
    parent = os.path.dirname(DB_PATH)
    if parent:
        os.makedirs(parent, exist_ok=True)
    return DB_PATH


def initialize_sqlite() -> None:
    global DB_PATH
    DB_PATH = db_schema_service.initialize_sqlite_core(
        deps={
            'resolve_startup_db_path': _resolve_startup_db_path,
            'default_user_id': app_config_service.DEFAULT_USER_ID,
        }
    )
    _log_event('schema_initialized', db_path=DB_PATH)
    cutoff = datetime.now(timezone.utc) - timedelta(days=app_config_service.SESSION_MAX_AGE_DAYS)
    with db_schema_service.sqlite_connect(DB_PATH) as connection:
        pruned = session_service.prune_sessions_core(connection, cutoff_iso=cutoff.isoformat())
        connection.commit()
    _log_event('sessions_pruned', count=pruned)


async def _enforce_request_size(request: Request, limit: int) -> None:
    await http_guard_service.enforce_request_size_core(
        request=request,
        limit=limit,
        http_exception_cls=HTTPException,
    )


def _session_deps() -> dict[str, object]:
    return {
        'db_path': _db_path,
        'sqlite_connect': db_schema_service.sqlite_connect,
        'utc_now_iso': utc_now_iso,
        'default_user_id': app_config_service.DEFAULT_USER_ID,
        'session_cookie': app_config_service.SESSION_COOKIE,
        'cookie_secure': app_config_service.COOKIE_SECURE,
    }


def build_request_context(request: Request, *, embedded: bool) -> session_service.RequestContext:
    return session_service.build_request_context_core(request=request, embedded=embedded, deps=_session_deps())


def pop_flash_messages(request: Request) -> list[dict[str, str]]:
    return session_service.pop_flash_messages(request=request, deps=_session_deps())


@app.middleware('http')
async def attach_session(request: Request, call_next):
    if request.url.path in SESSIONLESS_PATHS:
        return await call_next(request)
    return await session_service.attach_session_core(request=request, call_next=call_next, deps=_session_deps())


@app.middleware('http')
async def add_security_headers(request: Request, call_next):
    return await http_middleware_service.add_security_headers_core(
        request=request,
        call_next=call_next,
        deps={
            'metrics_service': metrics_service,
            'log_event': _log_event,
            'cross_site_request_allowed': lambda req: http_guard_service.cross_site_request_allowed_core(request=req),
            'request_body_limit_bytes': lambda method: http_guard_service.request_body_limit_bytes_core(
                method,
                default_limit=DEFAULT_BODY_LIMIT_BYTES,
            ),
            'plain_text_response_cls': PlainTextResponse,
        },
    )


@app.get(route_paths.HEALTH, response_class=JSONResponse)
def health() -> dict[str, str]:
    return {'status': 'ok'}


@app.get(route_paths.METRICS, response_class=JSONResponse)
def metrics() -> dict[str, object]:
    return metrics_service.snapshot_metrics_core()


templates.env.globals['app_name'] = app_config_service.APP_NAME
templates.env.globals['board_path'] = task_redirect_service.board_url
templates.env.globals['task_path'] = lambda name, task: task_redirect_service.task_action_url(
    getattr(route_paths, name),
    task,
)
templates.env.globals['create_path'] = task_redirect_service.create_form_url


def _register_routers() -> None:
    app_wiring_service.register_routers(
        app,
        deps={
            'routes_board': routes_board,
            'routes_task': routes_task,
            'db_path': _db_path,
            'sqlite_connect': db_schema_service.sqlite_connect,
            'templates': templates,
            'pop_flash_messages': pop_flash_messages,
            'app_name': app_config_service.APP_NAME,
            'utc_now_iso': utc_now_iso,
            'enforce_request_size': _enforce_request_size,
            'default_body_limit_bytes': DEFAULT_BODY_LIMIT_BYTES,
            'build_request_context': build_request_context,
            'record_workflow_outcome': metrics_service.record_workflow_outcome_core,
            'log_event': _log_event,
            'date_format': app_config_service.DATE_FORMAT,
            'csrf_failure_policy': app_config_service.CSRF_FAILURE_POLICY,
        },
    )


_register_routers()
