"""
Validate -> persist -> flash -> redirect orchestration shared by the task actions.

The engine never writes a response. It returns an outcome value and the route
layer turns that into HTTP through ``view_service.outcome_response_core``.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)

Values = dict[str, object]
Errors = dict[str, list[str]]


@dataclass(frozen=True)
class Redirected:
    url: str


@dataclass(frozen=True)
class Rendered:
    view: str
    values: Values
    errors: Errors
    context: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class Terminated:
    status_code: int = 204
    detail: str = ''
    values: Values = field(default_factory=dict)
    errors: Errors = field(default_factory=dict)


Outcome = Redirected | Rendered | Terminated


def run_workflow_core(
    *,
    values: Values,
    extra_values: Values | None = None,
    validate: Callable[[Values], tuple[bool, Errors]],
    persist: Callable[[Values], object],
    success_message: str,
    failure_message: str,
    context,
    redirect_resolver: Callable[[Values], str | None] | None = None,
    final_renderer: Callable[[Values, Errors], Rendered] | None = None,
) -> Outcome:
    merged = dict(values)
    merged.update(extra_values or {})

    valid, errors = validate(merged)
    if valid:
        if persist(merged):
            context.flash(success_message)
            if redirect_resolver is not None:
                target = redirect_resolver(merged)
                if target is not None:
                    return Redirected(target)
        else:
            context.flash_error(failure_message)
    else:
        LOGGER.debug('task workflow rejected fields: %s', sorted(errors))

    if final_renderer is not None:
        return final_renderer(merged, errors)
    return Terminated(values=merged, errors=errors)


def run_description_edit_core(
    *,
    task: Values,
    method: str,
    values: Values,
    context,
    validate: Callable[[Values], tuple[bool, Errors]],
    persist: Callable[[Values], object],
    board_url: str,
    task_url: str,
    view: str = 'task/edit_description.html',
) -> Outcome:
    if method.upper() != 'POST':
        return Rendered(view=view, values=dict(task), errors={}, context={'task': task})

    valid, errors = validate(values)
    if not valid:
        return Rendered(view=view, values=dict(values), errors=errors, context={'task': task})

    if persist(values):
        context.flash('Task updated successfully.')
    else:
        context.flash_error('Unable to update your task.')
    return Redirected(board_url if context.embedded else task_url)
