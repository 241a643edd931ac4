from urllib.parse import urlparse


async def enforce_request_size_core(*, request, limit: int, http_exception_cls) -> None:
    if limit <= 0:
        return
    content_length = request.headers.get('content-length', '').strip()
    if content_length.isdigit() and int(content_length) > limit:
        raise http_exception_cls(
            status_code=413,
            detail=f'Request body too large. Limit for this endpoint is {limit} bytes.',
        )
    body = await request.body()
    if len(body) > limit:
        raise http_exception_cls(
            status_code=413,
            detail=f'Request body too large. Limit for this endpoint is {limit} bytes.',
        )


def request_body_limit_bytes_core(method: str, *, default_limit: int) -> int:
    if method.upper() not in {'POST', 'PUT', 'PATCH'}:
        return 0
    return default_limit


def cross_site_request_allowed_core(*, request) -> bool:
    if request.method.upper() not in {'POST', 'PUT', 'PATCH', 'DELETE'}:
        return True
    host = request.headers.get('host', '').strip().lower()
    if not host:
        return True

    sec_fetch_site = request.headers.get('sec-fetch-site', '').strip().lower()
    if sec_fetch_site == 'cross-site':
        return False

    for header in ('origin', 'referer'):
        value = request.headers.get(header, '').strip()
        if value and (urlparse(value).netloc or '').strip().lower() != host:
            return False
    return True
