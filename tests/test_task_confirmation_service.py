import pytest

from services import task_confirmation_service
from services.task_workflow_service import Redirected, Rendered, Terminated
from tests.task_test_helpers import Spy, StubContext

TASK = {'id': 7, 'project_id': 2, 'title': 'Ship it'}
CONFIRMED_PARAMS = {'confirmation': 'yes', 'csrf_token': 'token-123'}


def _task_url(task_id, project_id=2):
    return f'/projects/{project_id}/tasks/{task_id}'


def _run(action, *, method, params, context, mutator, policy='forbid'):
    if action in ('open', 'close'):
        return task_confirmation_service.run_status_change_core(
            variant=action,
            task=TASK,
            method=method,
            params=params,
            context=context,
            mutate=mutator,
            task_url=_task_url(7),
            csrf_failure_policy=policy,
        )
    if action == 'remove':
        return task_confirmation_service.run_remove_core(
            task=TASK,
            method=method,
            params=params,
            context=context,
            remove=mutator,
            board_url='/projects/2/board',
            csrf_failure_policy=policy,
        )
    if action == 'duplicate':
        return task_confirmation_service.run_duplicate_core(
            task=TASK,
            method=method,
            params=params,
            context=context,
            duplicate=mutator,
            task_url_for=_task_url,
            csrf_failure_policy=policy,
        )
    return task_confirmation_service.run_project_transfer_core(
        variant=action,
        task=TASK,
        method=method,
        params={**params, 'project_id': '3'},
        context=context,
        projects={2: 'Current', 3: 'Other'},
        validate=lambda values, allowed: (True, {}),
        transfer=lambda task_id, project_id: mutator(task_id),
        task_url_for=_task_url,
        csrf_failure_policy=policy,
    )


ACTIONS = ('open', 'close', 'remove', 'duplicate', 'move', 'copy')


@pytest.mark.parametrize('action', ACTIONS)
@pytest.mark.parametrize(
    ('method', 'params'),
    [
        ('GET', {}),
        ('GET', CONFIRMED_PARAMS),
        ('POST', {'csrf_token': 'token-123'}),
        ('POST', {'confirmation': 'no', 'csrf_token': 'token-123'}),
    ],
)
def test_unconfirmed_requests_only_show_the_prompt(action, method, params):
    mutator = Spy(True)
    context = StubContext()

    outcome = _run(action, method=method, params=params, context=context, mutator=mutator)

    assert mutator.calls == []
    assert isinstance(outcome, Rendered)
    assert outcome.context['task'] == TASK
    assert context.flashes == []
    assert context.flash_errors == []


@pytest.mark.parametrize('action', ACTIONS)
def test_forged_token_is_forbidden_without_mutation(action):
    mutator = Spy(True)
    outcome = _run(
        action,
        method='POST',
        params={'confirmation': 'yes', 'csrf_token': 'forged'},
        context=StubContext(),
        mutator=mutator,
    )

    assert mutator.calls == []
    assert isinstance(outcome, Terminated)
    assert outcome.status_code == 403


@pytest.mark.parametrize('action', ACTIONS)
def test_forged_token_reprompts_under_prompt_policy(action):
    mutator = Spy(True)
    outcome = _run(
        action,
        method='POST',
        params={'confirmation': 'yes', 'csrf_token': ''},
        context=StubContext(),
        mutator=mutator,
        policy='prompt',
    )

    assert mutator.calls == []
    assert isinstance(outcome, Rendered)


@pytest.mark.parametrize(
    ('action', 'message'),
    [('open', 'Task opened successfully.'), ('close', 'Task closed successfully.')],
)
def test_confirmed_status_change_mutates_and_returns_to_task(action, message):
    mutator = Spy(True)
    context = StubContext()

    outcome = _run(action, method='POST', params=CONFIRMED_PARAMS, context=context, mutator=mutator)

    assert mutator.calls == [(7,)]
    assert outcome == Redirected('/projects/2/tasks/7')
    assert context.flashes == [message]


@pytest.mark.parametrize(
    ('action', 'message'),
    [('open', 'Unable to open this task.'), ('close', 'Unable to close this task.')],
)
def test_failed_status_change_still_returns_to_task(action, message):
    context = StubContext()

    outcome = _run(action, method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(False))

    assert outcome == Redirected('/projects/2/tasks/7')
    assert context.flash_errors == [message]


def test_confirmed_remove_returns_to_board():
    context = StubContext()
    outcome = _run('remove', method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(True))

    assert outcome == Redirected('/projects/2/board')
    assert context.flashes == ['Task removed successfully.']


def test_failed_remove_shows_prompt_again():
    context = StubContext()
    outcome = _run('remove', method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(False))

    assert isinstance(outcome, Rendered)
    assert outcome.view == 'task/remove.html'
    assert context.flash_errors == ['Unable to remove this task.']


def test_confirmed_duplicate_redirects_to_new_task():
    context = StubContext()
    outcome = _run('duplicate', method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(31))

    assert outcome == Redirected('/projects/2/tasks/31')
    assert context.flashes == ['Task created successfully.']


def test_failed_duplicate_shows_prompt_again():
    context = StubContext()
    outcome = _run('duplicate', method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(0))

    assert isinstance(outcome, Rendered)
    assert outcome.view == 'task/duplicate.html'
    assert context.flash_errors == ['Unable to create this task.']


def test_move_redirects_to_same_task_in_destination():
    context = StubContext()
    outcome = _run('move', method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(True))

    assert outcome == Redirected('/projects/3/tasks/7')
    assert context.flashes == ['Task updated successfully.']


def test_copy_redirects_to_new_task_in_destination():
    context = StubContext()
    outcome = _run('copy', method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(55))

    assert outcome == Redirected('/projects/3/tasks/55')
    assert context.flashes == ['Task created successfully.']


@pytest.mark.parametrize('variant', ['move', 'copy'])
def test_transfer_form_lists_every_destination_but_the_current_project(variant):
    outcome = task_confirmation_service.run_project_transfer_core(
        variant=variant,
        task=TASK,
        method='GET',
        params={},
        context=StubContext(),
        projects={1: 'Alpha', 2: 'Current', 3: 'Gamma'},
        validate=lambda values, allowed: (True, {}),
        transfer=Spy(True),
        task_url_for=_task_url,
    )

    assert isinstance(outcome, Rendered)
    assert outcome.context['projects_list'] == {1: 'Alpha', 3: 'Gamma'}


def test_transfer_validation_receives_destinations_and_blocks_transfer():
    seen = []
    transfer = Spy(True)
    context = StubContext()

    def _validate(values, allowed):
        seen.append((dict(values), allowed))
        return (False, {'project_id': ['This project is not a valid destination']})

    outcome = task_confirmation_service.run_project_transfer_core(
        variant='move',
        task=TASK,
        method='POST',
        params={**CONFIRMED_PARAMS, 'project_id': '2'},
        context=context,
        projects={2: 'Current', 3: 'Other'},
        validate=_validate,
        transfer=transfer,
        task_url_for=_task_url,
    )

    assert transfer.calls == []
    assert seen == [({'project_id': '2', 'id': 7}, {3})]
    assert isinstance(outcome, Rendered)
    assert outcome.errors == {'project_id': ['This project is not a valid destination']}
    assert context.flashes == []


def test_failed_transfer_flashes_error_and_rerenders_form():
    context = StubContext()
    outcome = _run('copy', method='POST', params=CONFIRMED_PARAMS, context=context, mutator=Spy(0))

    assert isinstance(outcome, Rendered)
    assert outcome.view == 'task/duplicate_project.html'
    assert context.flash_errors == ['Unable to create your task.']


def test_confirmation_state_checks_token_last():
    context = StubContext()
    state = task_confirmation_service.confirmation_state_core
    assert state(method='GET', params=CONFIRMED_PARAMS, context=context) == task_confirmation_service.PENDING
    assert state(method='POST', params={'csrf_token': 'bad'}, context=context) == task_confirmation_service.PENDING
    assert state(method='POST', params={'confirmation': 'yes'}, context=context) == task_confirmation_service.FORGED
    assert state(method='post', params=CONFIRMED_PARAMS, context=context) == task_confirmation_service.CONFIRMED
