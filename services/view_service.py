from fastapi import HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from services.task_workflow_service import Outcome, Redirected, Rendered

LAYOUT_TEMPLATE = 'layout.html'


def is_ajax_request_core(request) -> bool:
    return str(request.headers.get('x-requested-with', '')).strip().lower() == 'xmlhttprequest'


def is_embedded_request_core(request, params: dict[str, object] | None = None) -> bool:
    if is_ajax_request_core(request):
        return True
    raw = (params or {}).get('ajax')
    if raw is None:
        raw = request.query_params.get('ajax')
    try:
        return int(str(raw or '0').strip()) > 0
    except ValueError:
        return False


def render_view_core(
    *,
    request,
    view: str,
    params: dict[str, object],
    embedded: bool,
    deps: dict[str, object],
) -> HTMLResponse:
    """Render ``view`` alone for embedded requests, inside the page layout otherwise.

    Flash messages are consumed only by full-layout renders; a fragment
    swapped into an existing page leaves them for the next navigation.
    """
    _templates = deps['templates']
    _pop_flash_messages = deps['pop_flash_messages']
    _app_name = deps.get('app_name', '')

    session = getattr(request.state, 'session', None) or {}
    context = {
        **params,
        'ajax': embedded,
        'csrf_token': str(session.get('csrf_token') or ''),
    }
    if embedded:
        return _templates.TemplateResponse(request, view, context)
    context.update({
        'content_template': view,
        'flash_messages': _pop_flash_messages(request),
        'app_name': _app_name,
    })
    return _templates.TemplateResponse(request, LAYOUT_TEMPLATE, context)


def outcome_response_core(
    *,
    request,
    outcome: Outcome,
    embedded: bool,
    deps: dict[str, object],
) -> Response:
    if isinstance(outcome, Redirected):
        return RedirectResponse(url=outcome.url, status_code=303)
    if isinstance(outcome, Rendered):
        return render_view_core(
            request=request,
            view=outcome.view,
            params={**outcome.context, 'values': outcome.values, 'errors': outcome.errors},
            embedded=embedded,
            deps=deps,
        )
    if outcome.status_code >= 400:
        raise HTTPException(status_code=outcome.status_code, detail=outcome.detail or 'request terminated')
    return Response(status_code=outcome.status_code)
