"""In-process counters exposed at /metrics.

Counts live for the lifetime of the worker process; nothing is persisted.
"""
import re
from datetime import datetime, timezone
from threading import Lock

_LOCK = Lock()
_TOTALS: dict[str, int] = {}
_BUCKETS: dict[str, dict[str, int]] = {
    'requests_by_route': {},
    'requests_by_status': {},
    'workflow_outcomes': {},
}
_NUMERIC_SEGMENT = re.compile(r'/\d+(?=/|$)')


def _bump(table: dict[str, int], key: str) -> None:
    table[key] = table.get(key, 0) + 1


def normalize_path_core(path: str) -> str:
    cleaned = str(path or '').strip() or '/'
    return _NUMERIC_SEGMENT.sub('/:id', cleaned)


def record_request_core(*, method: str, path: str, status_code: int) -> None:
    route_key = f'{str(method or "").upper()} {normalize_path_core(path)}'
    status_class = f'{int(status_code) // 100}xx'
    with _LOCK:
        _bump(_TOTALS, 'requests_total')
        _bump(_BUCKETS['requests_by_route'], route_key)
        _bump(_BUCKETS['requests_by_status'], status_class)


def record_workflow_outcome_core(*, action: str, outcome: str) -> None:
    key = ':'.join(str(part or '').strip().lower() for part in (action, outcome))
    with _LOCK:
        _bump(_TOTALS, 'task_workflows_total')
        _bump(_BUCKETS['workflow_outcomes'], key)


def snapshot_metrics_core() -> dict[str, object]:
    with _LOCK:
        snapshot: dict[str, object] = {name: dict(table) for name, table in _BUCKETS.items()}
        snapshot['counters'] = dict(_TOTALS)
    snapshot['generated_at'] = datetime.now(timezone.utc).isoformat()
    return snapshot


def reset_metrics_core() -> None:
    with _LOCK:
        _TOTALS.clear()
        for table in _BUCKETS.values():
            table.clear()
