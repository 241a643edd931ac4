import logging
from collections.abc import Callable
from dataclasses import dataclass

from services.task_workflow_service import Outcome, Redirected, Rendered, Terminated

LOGGER = logging.getLogger(__name__)

CONFIRMATION_TOKEN = 'yes'
PENDING = 'pending'
CONFIRMED = 'confirmed'
FORGED = 'forged'
CSRF_FAILURE_FORBID = 'forbid'
CSRF_FAILURE_PROMPT = 'prompt'


@dataclass(frozen=True)
class StatusVariant:
    action: str
    view: str
    success_message: str
    failure_message: str


@dataclass(frozen=True)
class TransferVariant:
    action: str
    view: str
    success_message: str
    failure_message: str
    redirect_to_new_task: bool


STATUS_VARIANTS: dict[str, StatusVariant] = {
    'open': StatusVariant('open', 'task/open.html', 'Task opened successfully.', 'Unable to open this task.'),
    'close': StatusVariant('close', 'task/close.html', 'Task closed successfully.', 'Unable to close this task.'),
}
TRANSFER_VARIANTS: dict[str, TransferVariant] = {
    'move': TransferVariant(
        'move',
        'task/move_project.html',
        'Task updated successfully.',
        'Unable to update your task.',
        redirect_to_new_task=False,
    ),
    'copy': TransferVariant(
        'copy',
        'task/duplicate_project.html',
        'Task created successfully.',
        'Unable to create your task.',
        redirect_to_new_task=True,
    ),
}


def confirmation_state_core(*, method: str, params: dict[str, object], context) -> str:
    """Derive the gate state for one request.

    Only a POST carrying ``confirmation=yes`` can confirm. The token is checked
    last so an unconfirmed request never reports a forgery.
    """
    if method.upper() != 'POST':
        return PENDING
    if str(params.get('confirmation') or '') != CONFIRMATION_TOKEN:
        return PENDING
    if not context.verify_csrf(params.get('csrf_token')):
        return FORGED
    return CONFIRMED


def _gate(*, state: str, prompt: Rendered, csrf_failure_policy: str) -> Outcome | None:
    if state == CONFIRMED:
        return None
    if state == FORGED:
        LOGGER.warning('anti-forgery token rejected for %s', prompt.view)
        if csrf_failure_policy != CSRF_FAILURE_PROMPT:
            return Terminated(status_code=403, detail='invalid csrf token')
    return prompt


def destination_projects_core(*, projects: dict[int, str], task: dict[str, object]) -> dict[int, str]:
    current_project_id = int(task['project_id'])
    return {project_id: name for project_id, name in projects.items() if int(project_id) != current_project_id}


def run_status_change_core(
    *,
    variant: str,
    task: dict[str, object],
    method: str,
    params: dict[str, object],
    context,
    mutate: Callable[[int], bool],
    task_url: str,
    csrf_failure_policy: str = CSRF_FAILURE_FORBID,
) -> Outcome:
    profile = STATUS_VARIANTS[variant]
    prompt = Rendered(view=profile.view, values={}, errors={}, context={'task': task})
    state = confirmation_state_core(method=method, params=params, context=context)
    gated = _gate(state=state, prompt=prompt, csrf_failure_policy=csrf_failure_policy)
    if gated is not None:
        return gated

    if mutate(int(task['id'])):
        context.flash(profile.success_message)
    else:
        context.flash_error(profile.failure_message)
    return Redirected(task_url)


def run_remove_core(
    *,
    task: dict[str, object],
    method: str,
    params: dict[str, object],
    context,
    remove: Callable[[int], bool],
    board_url: str,
    csrf_failure_policy: str = CSRF_FAILURE_FORBID,
) -> Outcome:
    prompt = Rendered(view='task/remove.html', values={}, errors={}, context={'task': task})
    state = confirmation_state_core(method=method, params=params, context=context)
    gated = _gate(state=state, prompt=prompt, csrf_failure_policy=csrf_failure_policy)
    if gated is not None:
        return gated

    if remove(int(task['id'])):
        context.flash('Task removed successfully.')
        return Redirected(board_url)
    context.flash_error('Unable to remove this task.')
    return prompt


def run_duplicate_core(
    *,
    task: dict[str, object],
    method: str,
    params: dict[str, object],
    context,
    duplicate: Callable[[int], int],
    task_url_for: Callable[[int], str],
    csrf_failure_policy: str = CSRF_FAILURE_FORBID,
) -> Outcome:
    prompt = Rendered(view='task/duplicate.html', values={}, errors={}, context={'task': task})
    state = confirmation_state_core(method=method, params=params, context=context)
    gated = _gate(state=state, prompt=prompt, csrf_failure_policy=csrf_failure_policy)
    if gated is not None:
        return gated

    new_task_id = duplicate(int(task['id']))
    if new_task_id:
        context.flash('Task created successfully.')
        return Redirected(task_url_for(int(new_task_id)))
    context.flash_error('Unable to create this task.')
    return prompt


def run_project_transfer_core(
    *,
    variant: str,
    task: dict[str, object],
    method: str,
    params: dict[str, object],
    context,
    projects: dict[int, str],
    validate: Callable[[dict[str, object], set[int]], tuple[bool, dict[str, list[str]]]],
    transfer: Callable[[int, int], object],
    task_url_for: Callable[[int, int], str],
    csrf_failure_policy: str = CSRF_FAILURE_FORBID,
) -> Outcome:
    profile = TRANSFER_VARIANTS[variant]
    destinations = destination_projects_core(projects=projects, task=task)

    def _form(values: dict[str, object], errors: dict[str, list[str]]) -> Rendered:
        return Rendered(
            view=profile.view,
            values=values,
            errors=errors,
            context={'task': task, 'projects_list': destinations},
        )

    state = confirmation_state_core(method=method, params=params, context=context)
    gated = _gate(state=state, prompt=_form(dict(task), {}), csrf_failure_policy=csrf_failure_policy)
    if gated is not None:
        return gated

    values = {key: value for key, value in params.items() if key not in {'csrf_token', 'confirmation'}}
    values['id'] = task['id']
    valid, errors = validate(values, set(destinations))
    if not valid:
        return _form(values, errors)

    destination_id = int(str(values['project_id']).strip())
    result = transfer(int(task['id']), destination_id)
    if result:
        context.flash(profile.success_message)
        redirect_task_id = int(result) if profile.redirect_to_new_task else int(task['id'])
        return Redirected(task_url_for(redirect_task_id, destination_id))
    context.flash_error(profile.failure_message)
    return _form(values, {})
