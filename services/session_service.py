import hmac
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass

LOGGER = logging.getLogger(__name__)

FLASH_SUCCESS = 'success'
FLASH_ERROR = 'error'


@dataclass(frozen=True)
class RequestContext:
    """Per-request handles threaded through every task workflow call."""

    session_id: str
    user_id: int
    csrf_token: str
    embedded: bool
    flash: Callable[[str], None]
    flash_error: Callable[[str], None]

    def verify_csrf(self, token: object) -> bool:
        return verify_csrf_token_core(self.csrf_token, token)


def new_session_token_core() -> str:
    return secrets.token_urlsafe(32)


def verify_csrf_token_core(expected: str, provided: object) -> bool:
    expected_text = str(expected or '')
    provided_text = str(provided or '')
    if not expected_text or not provided_text:
        return False
    return hmac.compare_digest(expected_text, provided_text)


def load_session_core(connection, session_id: str) -> dict[str, object] | None:
    normalized = str(session_id or '').strip()
    if not normalized:
        return None
    row = connection.execute(
        'SELECT id, user_id, csrf_token, created_at FROM sessions WHERE id = ?',
        (normalized,),
    ).fetchone()
    if row is None:
        return None
    return {'id': row[0], 'user_id': int(row[1]), 'csrf_token': row[2], 'created_at': row[3]}


def create_session_core(connection, *, user_id: int, now_iso: str, new_token: Callable[[], str]) -> dict[str, object]:
    session = {
        'id': new_token(),
        'user_id': int(user_id),
        'csrf_token': new_token(),
        'created_at': now_iso,
    }
    connection.execute(
        'INSERT INTO sessions (id, user_id, csrf_token, created_at) VALUES (?, ?, ?, ?)',
        (session['id'], session['user_id'], session['csrf_token'], session['created_at']),
    )
    return session


def push_flash_core(connection, *, session_id: str, kind: str, message: str, now_iso: str) -> None:
    connection.execute(
        '''
        INSERT INTO flash_messages (session_id, kind, message, created_at)
        VALUES (?, ?, ?, ?)
        ''',
        (session_id, kind, str(message), now_iso),
    )


def pop_flash_messages_core(connection, *, session_id: str) -> list[dict[str, str]]:
    rows = connection.execute(
        'SELECT id, kind, message FROM flash_messages WHERE session_id = ? ORDER BY id',
        (session_id,),
    ).fetchall()
    if rows:
        connection.execute('DELETE FROM flash_messages WHERE session_id = ?', (session_id,))
    return [{'kind': str(row[1]), 'message': str(row[2])} for row in rows]


async def attach_session_core(*, request, call_next, deps: dict[str, object]):
    _db_path = deps['db_path']
    _sqlite_connect = deps['sqlite_connect']
    _utc_now_iso = deps['utc_now_iso']
    _default_user_id = int(deps['default_user_id'])
    _cookie_name = str(deps['session_cookie'])
    _cookie_secure = bool(deps.get('cookie_secure', False))
    _new_token = deps.get('new_token', new_session_token_core)

    cookie_value = str(request.cookies.get(_cookie_name) or '').strip()
    created = False
    with _sqlite_connect(_db_path()) as connection:
        session = load_session_core(connection, cookie_value)
        if session is None:
            session = create_session_core(
                connection,
                user_id=_default_user_id,
                now_iso=_utc_now_iso(),
                new_token=_new_token,
            )
            connection.commit()
            created = True
    request.state.session = session

    response = await call_next(request)
    if created:
        response.set_cookie(
            _cookie_name,
            str(session['id']),
            httponly=True,
            samesite='lax',
            secure=_cookie_secure,
        )
    return response


def build_request_context_core(*, request, embedded: bool, deps: dict[str, object]) -> RequestContext:
    _db_path = deps['db_path']
    _sqlite_connect = deps['sqlite_connect']
    _utc_now_iso = deps['utc_now_iso']

    session = request.state.session
    session_id = str(session['id'])

    def _push(kind: str, message: str) -> None:
        with _sqlite_connect(_db_path()) as connection:
            push_flash_core(connection, session_id=session_id, kind=kind, message=message, now_iso=_utc_now_iso())
            connection.commit()
        LOGGER.debug('flash %s queued for session', kind)

    return RequestContext(
        session_id=session_id,
        user_id=int(session['user_id']),
        csrf_token=str(session['csrf_token']),
        embedded=embedded,
        flash=lambda message: _push(FLASH_SUCCESS, message),
        flash_error=lambda message: _push(FLASH_ERROR, message),
    )


def pop_flash_messages(*, request, deps: dict[str, object]) -> list[dict[str, str]]:
    _db_path = deps['db_path']
    _sqlite_connect = deps['sqlite_connect']

    session = getattr(request.state, 'session', None)
    if not session:
        return []
    with _sqlite_connect(_db_path()) as connection:
        messages = pop_flash_messages_core(connection, session_id=str(session['id']))
        connection.commit()
    return messages


def prune_sessions_core(connection, *, cutoff_iso: str) -> int:
    """Delete sessions created before ``cutoff_iso`` with their flash messages."""
    connection.execute(
        'DELETE FROM flash_messages WHERE session_id IN (SELECT id FROM sessions WHERE created_at < ?)',
        (cutoff_iso,),
    )
    cursor = connection.execute('DELETE FROM sessions WHERE created_at < ?', (cutoff_iso,))
    connection.execute('DELETE FROM flash_messages WHERE session_id NOT IN (SELECT id FROM sessions)')
    return int(cursor.rowcount)
