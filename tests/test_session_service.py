import asyncio

from starlette.requests import Request
from starlette.responses import Response

from services import db_schema_service, session_service

NOW = '2026-10-19T12:00:00+00:00'


def _connection(tmp_path):
    connection = db_schema_service.sqlite_connect(str(tmp_path / 'sessions.db'))
    db_schema_service.ensure_schema(connection)
    return connection


def _request(cookie: str = '') -> Request:
    headers = [(b'cookie', f'taskboard_session={cookie}'.encode('utf-8'))] if cookie else []
    return Request({'type': 'http', 'method': 'GET', 'path': '/', 'query_string': b'', 'headers': headers})


def test_verify_csrf_token_rejects_blank_and_mismatch():
    assert session_service.verify_csrf_token_core('abc', 'abc')
    assert not session_service.verify_csrf_token_core('abc', 'abd')
    assert not session_service.verify_csrf_token_core('abc', '')
    assert not session_service.verify_csrf_token_core('', '')
    assert not session_service.verify_csrf_token_core('abc', None)


def test_flash_messages_are_popped_once_in_order(tmp_path):
    connection = _connection(tmp_path)
    session = session_service.create_session_core(
        connection,
        user_id=1,
        now_iso=NOW,
        new_token=session_service.new_session_token_core,
    )
    session_id = str(session['id'])
    session_service.push_flash_core(connection, session_id=session_id, kind='success', message='one', now_iso=NOW)
    session_service.push_flash_core(connection, session_id=session_id, kind='error', message='two', now_iso=NOW)

    assert session_service.pop_flash_messages_core(connection, session_id=session_id) == [
        {'kind': 'success', 'message': 'one'},
        {'kind': 'error', 'message': 'two'},
    ]
    assert session_service.pop_flash_messages_core(connection, session_id=session_id) == []
    connection.close()


def test_attach_session_creates_then_reuses_cookie_session(tmp_path):
    db_path = str(tmp_path / 'sessions.db')
    setup_connection = _connection(tmp_path)
    setup_connection.commit()
    setup_connection.close()
    tokens = iter(['session-1', 'csrf-1'])
    deps = {
        'db_path': lambda: db_path,
        'sqlite_connect': db_schema_service.sqlite_connect,
        'utc_now_iso': lambda: NOW,
        'default_user_id': 1,
        'session_cookie': 'taskboard_session',
        'new_token': lambda: next(tokens),
    }
    seen = []

    async def _call_next(request):
        seen.append(request.state.session)
        return Response('ok')

    first = asyncio.run(session_service.attach_session_core(request=_request(), call_next=_call_next, deps=deps))
    assert 'taskboard_session=session-1' in first.headers['set-cookie']
    assert 'httponly' in first.headers['set-cookie'].lower()
    assert seen[0]['csrf_token'] == 'csrf-1'

    second = asyncio.run(
        session_service.attach_session_core(request=_request('session-1'), call_next=_call_next, deps=deps)
    )
    assert 'set-cookie' not in second.headers
    assert seen[1]['id'] == 'session-1'
    assert seen[1]['user_id'] == 1


def test_request_context_flashes_into_session(tmp_path):
    db_path = str(tmp_path / 'sessions.db')
    connection = _connection(tmp_path)
    session = session_service.create_session_core(connection, user_id=1, now_iso=NOW, new_token=lambda: 'fixed')
    connection.commit()
    connection.close()

    request = _request()
    request.state.session = session
    deps = {'db_path': lambda: db_path, 'sqlite_connect': db_schema_service.sqlite_connect, 'utc_now_iso': lambda: NOW}
    context = session_service.build_request_context_core(request=request, embedded=True, deps=deps)

    context.flash('Task created successfully.')
    context.flash_error('Unable to create your task.')

    assert context.embedded
    assert context.verify_csrf('fixed')
    assert session_service.pop_flash_messages(request=request, deps=deps) == [
        {'kind': 'success', 'message': 'Task created successfully.'},
        {'kind': 'error', 'message': 'Unable to create your task.'},
    ]


def test_prune_sessions_drops_old_sessions_and_their_flashes(tmp_path):
    connection = _connection(tmp_path)
    tokens = iter(['old', 'old-csrf', 'new', 'new-csrf'])
    session_service.create_session_core(connection, user_id=1, now_iso='2026-01-01T00:00:00+00:00', new_token=lambda: next(tokens))
    session_service.create_session_core(connection, user_id=1, now_iso=NOW, new_token=lambda: next(tokens))
    session_service.push_flash_core(connection, session_id='old', kind='success', message='stale', now_iso=NOW)
    session_service.push_flash_core(connection, session_id='new', kind='success', message='fresh', now_iso=NOW)

    pruned = session_service.prune_sessions_core(connection, cutoff_iso='2026-09-19T12:00:00+00:00')

    assert pruned == 1
    assert session_service.load_session_core(connection, 'old') is None
    assert session_service.load_session_core(connection, 'new') is not None
    assert session_service.pop_flash_messages_core(connection, session_id='old') == []
    assert session_service.pop_flash_messages_core(connection, session_id='new') == [
        {'kind': 'success', 'message': 'fresh'},
    ]
    connection.close()
