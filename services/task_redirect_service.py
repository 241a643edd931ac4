from urllib.parse import urlencode

import route_paths
import services.app_config_service as app_config_service

TRUTHY_VALUES = {'1', 'true', 'yes', 'on'}
CREATE_ANOTHER_DROPPED_FIELDS = ('title', 'description', 'csrf_token')


def _prefixed(path: str, *, base_path: str | None) -> str:
    prefix = app_config_service.BASE_PATH if base_path is None else base_path
    return f'{prefix}{path}'


def board_url(project_id: object, *, base_path: str | None = None) -> str:
    return _prefixed(route_paths.PROJECT_BOARD.format(project_id=project_id), base_path=base_path)


def task_url(task_id: object, project_id: object, *, base_path: str | None = None) -> str:
    return _prefixed(
        route_paths.TASK_SHOW.format(project_id=project_id, task_id=task_id),
        base_path=base_path,
    )


def task_action_url(action_path: str, task: dict[str, object], *, base_path: str | None = None) -> str:
    return _prefixed(
        action_path.format(project_id=task['project_id'], task_id=task['id']),
        base_path=base_path,
    )


def create_form_url(project_id: object, query: dict[str, object] | None = None, *, base_path: str | None = None) -> str:
    url = _prefixed(route_paths.TASK_CREATE.format(project_id=project_id), base_path=base_path)
    if query:
        url = f'{url}?{urlencode(query)}'
    return url


def is_truthy(value: object) -> bool:
    return str(value or '').strip().lower() in TRUTHY_VALUES


def creation_redirect_core(
    *,
    request_values: dict[str, object],
    project_id: object,
    base_path: str | None = None,
) -> str:
    """Where to go after a task was created.

    ``request_values`` is a fresh copy of what the browser submitted, not the
    field set the workflow validated. With ``another_task`` set the creation
    form is reopened with everything except the title and description kept,
    so a batch of similar tasks can be entered quickly.
    """
    if is_truthy(request_values.get('another_task')):
        query = {
            key: value
            for key, value in request_values.items()
            if key not in CREATE_ANOTHER_DROPPED_FIELDS
        }
        return create_form_url(project_id, query, base_path=base_path)
    return board_url(project_id, base_path=base_path)


def update_redirect_core(*, task: dict[str, object], embedded: bool, base_path: str | None = None) -> str:
    if embedded:
        return board_url(task['project_id'], base_path=base_path)
    return task_url(task['id'], task['project_id'], base_path=base_path)
