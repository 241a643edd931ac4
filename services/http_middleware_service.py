import time

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data:; "
    "object-src 'none'; "
    "base-uri 'self'; "
    "form-action 'self'; "
    "frame-ancestors 'none'"
)
RESPONSE_HEADERS = {
    'Content-Security-Policy': CONTENT_SECURITY_POLICY,
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'same-origin',
    'Cache-Control': 'no-store',
}


def _route_template(request) -> str:
    route = request.scope.get('route')
    return str(getattr(route, 'path', '') or request.url.path)


def _early_rejection(request, *, deps: dict[str, object]):
    """Return a plain-text response for requests refused before routing, else None."""
    _cross_site_request_allowed = deps['cross_site_request_allowed']
    _request_body_limit_bytes = deps['request_body_limit_bytes']
    _plain_text_response_cls = deps['plain_text_response_cls']

    if not _cross_site_request_allowed(request):
        return _plain_text_response_cls('cross-site request blocked', status_code=403)
    limit = _request_body_limit_bytes(request.method)
    declared = request.headers.get('content-length', '').strip()
    if limit > 0 and declared.isdigit() and int(declared) > limit:
        return _plain_text_response_cls(f'request body exceeds {limit} bytes', status_code=413)
    return None


async def add_security_headers_core(*, request, call_next, deps: dict[str, object]):
    _metrics_service = deps['metrics_service']
    _log_event = deps['log_event']

    started = time.perf_counter()
    response = _early_rejection(request, deps=deps)
    if response is not None:
        _log_event(
            'request_rejected',
            method=request.method.upper(),
            path=request.url.path,
            status_code=response.status_code,
        )
    else:
        try:
            response = await call_next(request)
        except Exception as exc:
            _log_event('request_exception', method=request.method.upper(), path=request.url.path, error=str(exc))
            raise
        for name, value in RESPONSE_HEADERS.items():
            response.headers.setdefault(name, value)

    route_path = _route_template(request)
    _metrics_service.record_request_core(method=request.method, path=route_path, status_code=response.status_code)
    _log_event(
        'request_complete',
        method=request.method.upper(),
        path=route_path,
        status_code=int(response.status_code),
        duration_ms=int((time.perf_counter() - started) * 1000),
    )
    return response
