import route_paths
import services.project_store_service as project_store_service
import services.task_store_service as task_store_service
import services.view_service as view_service
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse


def create_board_router(*, deps: dict[str, object]) -> APIRouter:
    router = APIRouter()

    _db_path = deps['db_path']
    _sqlite_connect = deps['sqlite_connect']
    _view_deps = {
        'templates': deps['templates'],
        'pop_flash_messages': deps['pop_flash_messages'],
        'app_name': deps.get('app_name', ''),
    }

    @router.get(route_paths.PROJECT_BOARD, response_class=HTMLResponse)
    def board_show(request: Request, project_id: int) -> HTMLResponse:
        user_id = int(request.state.session['user_id'])
        with _sqlite_connect(_db_path()) as connection:
            project = project_store_service.get_project_by_id_core(connection, project_id)
            if project is None:
                raise HTTPException(status_code=404, detail='project not found')
            if not project_store_service.user_can_access_project_core(connection, project_id=project_id, user_id=user_id):
                raise HTTPException(status_code=403, detail='access denied')
            columns = project_store_service.columns_list_core(connection, project_id)
            tasks_by_column = task_store_service.list_board_tasks_core(connection, project_id)
        return view_service.render_view_core(
            request=request,
            view='board/show.html',
            params={
                'project': project,
                'columns': [
                    {'id': column_id, 'title': title, 'tasks': tasks_by_column.get(column_id, [])}
                    for column_id, title in columns.items()
                ],
                'title': project['name'],
            },
            embedded=view_service.is_embedded_request_core(request),
            deps=_view_deps,
        )

    return router
