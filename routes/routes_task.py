import logging

import route_paths
import services.date_parser_service as date_parser_service
import services.project_store_service as project_store_service
import services.task_confirmation_service as task_confirmation_service
import services.task_redirect_service as task_redirect_service
import services.task_store_service as task_store_service
import services.task_validator_service as task_validator_service
import services.task_workflow_service as task_workflow_service
import services.time_tracking_service as time_tracking_service
import services.view_service as view_service
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, Response

LOGGER = logging.getLogger(__name__)

CREATE_FORM_QUERY_FIELDS = ('swimlane_id', 'column_id', 'owner_id', 'another_task')


def create_task_router(*, deps: dict[str, object]) -> APIRouter:
    router = APIRouter()

    _db_path = deps['db_path']
    _sqlite_connect = deps['sqlite_connect']
    _utc_now_iso = deps['utc_now_iso']
    _enforce_request_size = deps['enforce_request_size']
    _default_body_limit_bytes = deps['default_body_limit_bytes']
    _build_request_context = deps['build_request_context']
    _record_workflow_outcome = deps['record_workflow_outcome']
    _log_event = deps['log_event']
    _date_format = str(deps['date_format'])
    _csrf_failure_policy = str(deps['csrf_failure_policy'])
    _view_deps = {
        'templates': deps['templates'],
        'pop_flash_messages': deps['pop_flash_messages'],
        'app_name': deps.get('app_name', ''),
    }

    def _read(operation):
        with _sqlite_connect(_db_path()) as connection:
            return operation(connection)

    def _write(operation):
        with _sqlite_connect(_db_path()) as connection:
            result = operation(connection)
            connection.commit()
        return result

    async def _request_params(request: Request) -> dict[str, object]:
        params: dict[str, object] = dict(request.query_params)
        if request.method.upper() == 'POST':
            await _enforce_request_size(request, _default_body_limit_bytes)
            form_data = await request.form()
            params.update({key: str(value) for key, value in form_data.items() if isinstance(value, str)})
        return params

    def _session_user_id(request: Request) -> int:
        return int(request.state.session['user_id'])

    def _get_project(request: Request, project_id: int) -> dict[str, object]:
        user_id = _session_user_id(request)

        def _lookup(connection):
            project = project_store_service.get_project_by_id_core(connection, project_id)
            if project is None:
                raise HTTPException(status_code=404, detail='project not found')
            if not project_store_service.user_can_access_project_core(connection, project_id=project_id, user_id=user_id):
                raise HTTPException(status_code=403, detail='access denied')
            return project

        return _read(_lookup)

    def _get_task(request: Request, project_id: int, task_id: int) -> dict[str, object]:
        _get_project(request, project_id)
        task = _read(lambda connection: task_store_service.get_task_details_core(connection, task_id))
        if task is None or int(task['project_id']) != project_id:
            raise HTTPException(status_code=404, detail='task not found')
        return task

    def _respond(
        request: Request,
        outcome: task_workflow_service.Outcome,
        *,
        action: str,
        embedded: bool,
        task_id: int | None = None,
    ) -> Response:
        outcome_name = type(outcome).__name__.lower()
        _record_workflow_outcome(action=action, outcome=outcome_name)
        _log_event('task_workflow_outcome', action=action, outcome=outcome_name, task_id=task_id)
        return view_service.outcome_response_core(
            request=request,
            outcome=outcome,
            embedded=embedded,
            deps=_view_deps,
        )

    def _create_form(project: dict[str, object], values: dict[str, object], errors: dict[str, list[str]]):
        project_id = int(project['id'])
        lists = _read(lambda connection: {
            'columns_list': project_store_service.columns_list_core(connection, project_id),
            'users_list': project_store_service.member_list_core(connection, project_id),
            'categories_list': project_store_service.category_list_core(connection, project_id),
        })
        return task_workflow_service.Rendered(
            view='task/new.html',
            values={'project_id': project_id, **values},
            errors=errors,
            context={
                'project': project,
                **lists,
                'colors_list': project_store_service.COLOR_LIST,
                'date_format': _date_format,
                'date_formats': date_parser_service.available_formats_core(),
                'title': f'{project["name"]} > New task',
            },
        )

    def _edit_form(task: dict[str, object], values: dict[str, object], errors: dict[str, list[str]]):
        project_id = int(task['project_id'])
        lists = _read(lambda connection: {
            'users_list': project_store_service.member_list_core(connection, project_id),
            'categories_list': project_store_service.category_list_core(connection, project_id),
        })
        return task_workflow_service.Rendered(
            view='task/edit.html',
            values=values,
            errors=errors,
            context={
                'task': task,
                **lists,
                'colors_list': project_store_service.COLOR_LIST,
                'date_format': _date_format,
                'date_formats': date_parser_service.available_formats_core(),
            },
        )

    def _task_detail(task: dict[str, object], values: dict[str, object] | None, errors: dict[str, list[str]]):
        task_id = int(task['id'])
        project_id = int(task['project_id'])
        related = _read(lambda connection: {
            'project': project_store_service.get_project_by_id_core(connection, project_id),
            'subtasks': task_store_service.list_subtasks_core(connection, task_id),
            'comments': task_store_service.list_comments_core(connection, task_id),
            'columns_list': project_store_service.columns_list_core(connection, project_id),
        })
        if values is None:
            values = date_parser_service.format_dates_core(
                {
                    'id': task_id,
                    'date_started': task.get('date_started'),
                    'time_estimated': task.get('time_estimated') or '',
                    'time_spent': task.get('time_spent') or '',
                },
                ['date_started'],
                date_format=_date_format,
            )
        return task_workflow_service.Rendered(
            view='task/show.html',
            values=values,
            errors=errors,
            context={
                'task': task,
                **related,
                'timesheet': time_tracking_service.task_timesheet_core(task, related['subtasks']),
                'colors_list': project_store_service.COLOR_LIST,
                'date_format': _date_format,
                'date_formats': date_parser_service.available_formats_core(),
                'title': f'{task["project_name"]} > {task["title"]}',
            },
        )

    def _persist_update(values: dict[str, object]) -> bool:
        return _write(lambda connection: task_store_service.update_task_core(
            connection,
            values,
            now_iso=_utc_now_iso(),
            date_format=_date_format,
        ))

    @router.get(route_paths.TASK_PUBLIC, response_class=HTMLResponse)
    def task_public(request: Request, task_id: int, token: str = '') -> Response:
        project = _read(lambda connection: project_store_service.get_project_by_token_core(connection, token))
        if project is None:
            raise HTTPException(status_code=403, detail='access denied')
        task = _read(lambda connection: task_store_service.get_task_details_core(connection, task_id))
        if task is None or int(task['project_id']) != int(project['id']):
            raise HTTPException(status_code=404, detail='task not found')
        related = _read(lambda connection: {
            'comments': task_store_service.list_comments_core(connection, task_id),
            'subtasks': task_store_service.list_subtasks_core(connection, task_id),
            'columns_list': project_store_service.columns_list_core(connection, int(project['id'])),
        })
        return view_service.render_view_core(
            request=request,
            view='task/public.html',
            params={
                'project': project,
                'task': task,
                **related,
                'colors_list': project_store_service.COLOR_LIST,
                'title': task['title'],
                'not_editable': True,
            },
            embedded=True,
            deps=_view_deps,
        )

    @router.get(route_paths.TASK_CREATE, response_class=HTMLResponse)
    def task_create_form(request: Request, project_id: int) -> Response:
        project = _get_project(request, project_id)
        embedded = view_service.is_embedded_request_core(request)
        query = request.query_params
        values: dict[str, object] = {
            field: task_store_service.coerce_int(query.get(field)) for field in CREATE_FORM_QUERY_FIELDS
        }
        values['color_id'] = str(query.get('color_id') or '')
        return _respond(request, _create_form(project, values, {}), action='create_form', embedded=embedded)

    @router.post(route_paths.TASK_CREATE)
    async def task_save(request: Request, project_id: int) -> Response:
        project = _get_project(request, project_id)
        form_values = await _request_params(request)
        embedded = view_service.is_embedded_request_core(request, form_values)
        context = _build_request_context(request, embedded=embedded)
        outcome = task_workflow_service.run_workflow_core(
            values=form_values,
            extra_values={'creator_id': context.user_id, 'project_id': project_id},
            validate=lambda values: task_validator_service.validate_creation_core(values, date_format=_date_format),
            persist=lambda values: _write(lambda connection: task_store_service.create_task_core(
                connection,
                values,
                now_iso=_utc_now_iso(),
                date_format=_date_format,
            )),
            success_message='Task created successfully.',
            failure_message='Unable to create your task.',
            context=context,
            redirect_resolver=lambda _values: task_redirect_service.creation_redirect_core(
                request_values=dict(form_values),
                project_id=project_id,
            ),
            final_renderer=lambda values, errors: _create_form(project, values, errors),
        )
        return _respond(request, outcome, action='create', embedded=embedded)

    @router.get(route_paths.TASK_SHOW, response_class=HTMLResponse)
    def task_show(request: Request, project_id: int, task_id: int) -> Response:
        task = _get_task(request, project_id, task_id)
        return _respond(request, _task_detail(task, None, {}), action='show', embedded=False, task_id=task_id)

    @router.get(route_paths.TASK_EDIT, response_class=HTMLResponse)
    def task_edit_form(request: Request, project_id: int, task_id: int) -> Response:
        task = _get_task(request, project_id, task_id)
        embedded = view_service.is_embedded_request_core(request)
        values = date_parser_service.format_dates_core(task, ['date_due'], date_format=_date_format)
        return _respond(request, _edit_form(task, values, {}), action='edit_form', embedded=embedded, task_id=task_id)

    @router.post(route_paths.TASK_EDIT)
    async def task_update(request: Request, project_id: int, task_id: int) -> Response:
        task = _get_task(request, project_id, task_id)
        form_values = await _request_params(request)
        embedded = view_service.is_embedded_request_core(request, form_values)
        context = _build_request_context(request, embedded=embedded)
        outcome = task_workflow_service.run_workflow_core(
            values=form_values,
            extra_values={'id': task_id},
            validate=lambda values: task_validator_service.validate_modification_core(values, date_format=_date_format),
            persist=_persist_update,
            success_message='Task updated successfully.',
            failure_message='Unable to update your task.',
            context=context,
            redirect_resolver=lambda _values: task_redirect_service.update_redirect_core(task=task, embedded=embedded),
            final_renderer=lambda values, errors: _edit_form(task, values, errors),
        )
        return _respond(request, outcome, action='update', embedded=embedded, task_id=task_id)

    @router.post(route_paths.TASK_TIME)
    async def task_time(request: Request, project_id: int, task_id: int) -> Response:
        task = _get_task(request, project_id, task_id)
        form_values = await _request_params(request)
        context = _build_request_context(request, embedded=False)
        outcome = task_workflow_service.run_workflow_core(
            values=form_values,
            extra_values={'id': task_id},
            validate=lambda values: task_validator_service.validate_time_modification_core(
                values,
                date_format=_date_format,
            ),
            persist=_persist_update,
            success_message='Task updated successfully.',
            failure_message='Unable to update your task.',
            context=context,
        )
        if outcome.errors:
            # Rejected input is shown on the detail page instead of being dropped by the redirect.
            outcome = _task_detail(task, outcome.values, outcome.errors)
        else:
            outcome = task_workflow_service.Redirected(task_redirect_service.task_url(task_id, project_id))
        return _respond(request, outcome, action='time', embedded=False, task_id=task_id)

    @router.api_route(route_paths.TASK_DESCRIPTION, methods=['GET', 'POST'])
    async def task_description(request: Request, project_id: int, task_id: int) -> Response:
        task = _get_task(request, project_id, task_id)
        params = await _request_params(request)
        embedded = view_service.is_embedded_request_core(request, params)
        context = _build_request_context(request, embedded=embedded)
        outcome = task_workflow_service.run_description_edit_core(
            task=task,
            method=request.method,
            values={'id': task_id, 'description': params.get('description', '')},
            context=context,
            validate=task_validator_service.validate_description_creation_core,
            persist=_persist_update,
            board_url=task_redirect_service.board_url(project_id),
            task_url=task_redirect_service.task_url(task_id, project_id),
        )
        return _respond(request, outcome, action='description', embedded=embedded, task_id=task_id)

    async def _status_change(request: Request, project_id: int, task_id: int, variant: str) -> Response:
        task = _get_task(request, project_id, task_id)
        params = await _request_params(request)
        embedded = view_service.is_embedded_request_core(request, params)
        context = _build_request_context(request, embedded=embedded)
        mutator = task_store_service.open_task_core if variant == 'open' else task_store_service.close_task_core
        outcome = task_confirmation_service.run_status_change_core(
            variant=variant,
            task=task,
            method=request.method,
            params=params,
            context=context,
            mutate=lambda target_id: _write(lambda connection: mutator(connection, target_id, now_iso=_utc_now_iso())),
            task_url=task_redirect_service.task_url(task_id, project_id),
            csrf_failure_policy=_csrf_failure_policy,
        )
        return _respond(request, outcome, action=variant, embedded=embedded, task_id=task_id)

    @router.api_route(route_paths.TASK_OPEN, methods=['GET', 'POST'])
    async def task_open(request: Request, project_id: int, task_id: int) -> Response:
        return await _status_change(request, project_id, task_id, 'open')

    @router.api_route(route_paths.TASK_CLOSE, methods=['GET', 'POST'])
    async def task_close(request: Request, project_id: int, task_id: int) -> Response:
        return await _status_change(request, project_id, task_id, 'close')

    @router.api_route(route_paths.TASK_REMOVE, methods=['GET', 'POST'])
    async def task_remove(request: Request, project_id: int, task_id: int) -> Response:
        task = _get_task(request, project_id, task_id)
        user_id = _session_user_id(request)
        if not _read(lambda connection: task_store_service.can_remove_task_core(connection, task, user_id=user_id)):
            LOGGER.warning('user %s may not remove task %s', user_id, task_id)
            raise HTTPException(status_code=403, detail='access denied')
        params = await _request_params(request)
        embedded = view_service.is_embedded_request_core(request, params)
        context = _build_request_context(request, embedded=embedded)
        outcome = task_confirmation_service.run_remove_core(
            task=task,
            method=request.method,
            params=params,
            context=context,
            remove=lambda target_id: _write(lambda connection: task_store_service.remove_task_core(connection, target_id)),
            board_url=task_redirect_service.board_url(project_id),
            csrf_failure_policy=_csrf_failure_policy,
        )
        return _respond(request, outcome, action='remove', embedded=embedded, task_id=task_id)

    @router.api_route(route_paths.TASK_DUPLICATE, methods=['GET', 'POST'])
    async def task_duplicate(request: Request, project_id: int, task_id: int) -> Response:
        task = _get_task(request, project_id, task_id)
        params = await _request_params(request)
        embedded = view_service.is_embedded_request_core(request, params)
        context = _build_request_context(request, embedded=embedded)
        outcome = task_confirmation_service.run_duplicate_core(
            task=task,
            method=request.method,
            params=params,
            context=context,
            duplicate=lambda target_id: _write(lambda connection: task_store_service.duplicate_task_core(
                connection,
                target_id,
                now_iso=_utc_now_iso(),
            )),
            task_url_for=lambda new_task_id: task_redirect_service.task_url(new_task_id, project_id),
            csrf_failure_policy=_csrf_failure_policy,
        )
        return _respond(request, outcome, action='duplicate', embedded=embedded, task_id=task_id)

    async def _project_transfer(request: Request, project_id: int, task_id: int, variant: str) -> Response:
        task = _get_task(request, project_id, task_id)
        params = await _request_params(request)
        embedded = view_service.is_embedded_request_core(request, params)
        context = _build_request_context(request, embedded=embedded)
        projects = _read(lambda connection: project_store_service.accessible_projects_core(
            connection,
            user_id=context.user_id,
        ))
        if variant == 'move':
            def _transfer(target_id: int, destination_id: int) -> object:
                return _write(lambda connection: task_store_service.move_to_project_core(
                    connection,
                    target_id,
                    destination_id,
                    now_iso=_utc_now_iso(),
                ))
        else:
            def _transfer(target_id: int, destination_id: int) -> object:
                return _write(lambda connection: task_store_service.duplicate_to_project_core(
                    connection,
                    target_id,
                    destination_id,
                    now_iso=_utc_now_iso(),
                ))
        outcome = task_confirmation_service.run_project_transfer_core(
            variant=variant,
            task=task,
            method=request.method,
            params=params,
            context=context,
            projects=projects,
            validate=lambda values, allowed: task_validator_service.validate_project_modification_core(
                values,
                allowed_project_ids=allowed,
            ),
            transfer=_transfer,
            task_url_for=task_redirect_service.task_url,
            csrf_failure_policy=_csrf_failure_policy,
        )
        return _respond(request, outcome, action=variant, embedded=embedded, task_id=task_id)

    @router.api_route(route_paths.TASK_MOVE, methods=['GET', 'POST'])
    async def task_move(request: Request, project_id: int, task_id: int) -> Response:
        return await _project_transfer(request, project_id, task_id, 'move')

    @router.api_route(route_paths.TASK_COPY, methods=['GET', 'POST'])
    async def task_copy(request: Request, project_id: int, task_id: int) -> Response:
        return await _project_transfer(request, project_id, task_id, 'copy')

    return router
