import math

import services.date_parser_service as date_parser_service
import services.project_store_service as project_store_service

INTEGER_COLUMNS = (
    'project_id',
    'column_id',
    'swimlane_id',
    'owner_id',
    'creator_id',
    'category_id',
    'score',
)
REAL_COLUMNS = ('time_estimated', 'time_spent')
TEXT_COLUMNS = ('title', 'description', 'color_id')
DATE_COLUMNS = ('date_due', 'date_started')
UPDATABLE_COLUMNS = (*TEXT_COLUMNS, *INTEGER_COLUMNS, *REAL_COLUMNS, *DATE_COLUMNS)
COPIED_COLUMNS = (
    'title',
    'description',
    'color_id',
    'column_id',
    'swimlane_id',
    'owner_id',
    'creator_id',
    'category_id',
    'score',
    'date_started',
    'date_due',
    'time_estimated',
)


def coerce_int(value: object) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def coerce_float(value: object) -> float:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _normalize_columns(values: dict[str, object], *, date_format: str) -> dict[str, object]:
    normalized: dict[str, object] = {}
    for column in UPDATABLE_COLUMNS:
        if column not in values:
            continue
        raw = values[column]
        if column in INTEGER_COLUMNS:
            normalized[column] = coerce_int(raw)
        elif column in REAL_COLUMNS:
            normalized[column] = coerce_float(raw)
        elif column in DATE_COLUMNS:
            normalized[column] = date_parser_service.to_storage_core(raw, date_format=date_format)
        else:
            normalized[column] = str(raw if raw is not None else '')
    if 'title' in normalized:
        normalized['title'] = str(normalized['title']).strip()
    if 'color_id' in normalized and normalized['color_id'] not in project_store_service.COLOR_LIST:
        normalized['color_id'] = project_store_service.DEFAULT_COLOR
    return normalized


def _next_position(connection, *, project_id: int, column_id: int) -> int:
    row = connection.execute(
        'SELECT COALESCE(MAX(position), 0) FROM tasks WHERE project_id = ? AND column_id = ?',
        (project_id, column_id),
    ).fetchone()
    return int(row[0]) + 1


def _column_in_project(connection, *, column_id: int, project_id: int) -> bool:
    row = connection.execute(
        'SELECT 1 FROM columns WHERE id = ? AND project_id = ?',
        (column_id, project_id),
    ).fetchone()
    return row is not None


def _insert_task(connection, fields: dict[str, object], *, now_iso: str) -> int:
    fields = {
        **fields,
        'position': _next_position(
            connection,
            project_id=int(fields['project_id']),
            column_id=int(fields['column_id']),
        ),
        'is_active': 1,
        'date_creation': now_iso,
        'date_modification': now_iso,
    }
    names = list(fields)
    cursor = connection.execute(
        f'INSERT INTO tasks ({", ".join(names)}) VALUES ({", ".join("?" for _ in names)})',
        tuple(fields[name] for name in names),
    )
    return int(cursor.lastrowid)


def _copy_subtasks(connection, *, source_task_id: int, target_task_id: int) -> None:
    connection.execute(
        '''
        INSERT INTO subtasks (task_id, title, status, user_id, time_estimated, time_spent)
        SELECT ?, title, 0, user_id, time_estimated, 0
        FROM subtasks
        WHERE task_id = ?
        ORDER BY id
        ''',
        (target_task_id, source_task_id),
    )


def _project_transfer_fields(connection, task: dict[str, object], *, project_id: int) -> dict[str, object]:
    owner_id = int(task.get('owner_id') or 0)
    if owner_id and not project_store_service.is_member_core(connection, project_id=project_id, user_id=owner_id):
        owner_id = 0
    return {
        'project_id': project_id,
        'column_id': project_store_service.first_column_id_core(connection, project_id),
        'swimlane_id': 0,
        'category_id': 0,
        'owner_id': owner_id,
    }


def get_task_core(connection, task_id: int) -> dict[str, object] | None:
    row = connection.execute('SELECT * FROM tasks WHERE id = ?', (task_id,)).fetchone()
    return dict(row) if row is not None else None


def get_task_details_core(connection, task_id: int) -> dict[str, object] | None:
    row = connection.execute(
        '''
        SELECT
            t.*,
            p.name AS project_name,
            c.title AS column_title,
            COALESCE(NULLIF(o.name, ''), o.username, '') AS owner_name,
            COALESCE(NULLIF(cr.name, ''), cr.username, '') AS creator_name
        FROM tasks t
        JOIN projects p ON p.id = t.project_id
        LEFT JOIN columns c ON c.id = t.column_id
        LEFT JOIN users o ON o.id = t.owner_id
        LEFT JOIN users cr ON cr.id = t.creator_id
        WHERE t.id = ?
        ''',
        (task_id,),
    ).fetchone()
    return dict(row) if row is not None else None


def list_subtasks_core(connection, task_id: int) -> list[dict[str, object]]:
    rows = connection.execute(
        '''
        SELECT id, task_id, title, status, user_id, time_estimated, time_spent
        FROM subtasks
        WHERE task_id = ?
        ORDER BY id
        ''',
        (task_id,),
    ).fetchall()
    return [dict(row) for row in rows]


def list_comments_core(connection, task_id: int) -> list[dict[str, object]]:
    rows = connection.execute(
        '''
        SELECT c.id, c.task_id, c.user_id, c.comment, c.date_creation,
               COALESCE(NULLIF(u.name, ''), u.username, '') AS author
        FROM comments c
        LEFT JOIN users u ON u.id = c.user_id
        WHERE c.task_id = ?
        ORDER BY c.date_creation, c.id
        ''',
        (task_id,),
    ).fetchall()
    return [dict(row) for row in rows]


def list_board_tasks_core(connection, project_id: int) -> dict[int, list[dict[str, object]]]:
    rows = connection.execute(
        '''
        SELECT id, title, color_id, column_id, owner_id, is_active, position
        FROM tasks
        WHERE project_id = ? AND is_active = 1
        ORDER BY column_id, position, id
        ''',
        (project_id,),
    ).fetchall()
    by_column: dict[int, list[dict[str, object]]] = {}
    for row in rows:
        by_column.setdefault(int(row['column_id']), []).append(dict(row))
    return by_column


def create_task_core(connection, values: dict[str, object], *, now_iso: str, date_format: str) -> int:
    fields = _normalize_columns(values, date_format=date_format)
    project_id = int(fields.get('project_id') or 0)
    if project_store_service.get_project_by_id_core(connection, project_id) is None:
        return 0
    column_id = int(fields.get('column_id') or 0)
    if not column_id or not _column_in_project(connection, column_id=column_id, project_id=project_id):
        fields['column_id'] = project_store_service.first_column_id_core(connection, project_id)
    fields.setdefault('color_id', project_store_service.DEFAULT_COLOR)
    return _insert_task(connection, fields, now_iso=now_iso)


def update_task_core(connection, values: dict[str, object], *, now_iso: str, date_format: str) -> bool:
    task_id = coerce_int(values.get('id'))
    if get_task_core(connection, task_id) is None:
        return False
    fields = _normalize_columns(values, date_format=date_format)
    # Project changes go through move_to_project_core.
    fields.pop('project_id', None)
    fields['date_modification'] = now_iso
    assignments = ', '.join(f'{name} = ?' for name in fields)
    cursor = connection.execute(
        f'UPDATE tasks SET {assignments} WHERE id = ?',
        (*fields.values(), task_id),
    )
    return cursor.rowcount > 0


def open_task_core(connection, task_id: int, *, now_iso: str) -> bool:
    cursor = connection.execute(
        '''
        UPDATE tasks
        SET is_active = 1, date_completed = NULL, date_modification = ?
        WHERE id = ?
        ''',
        (now_iso, task_id),
    )
    return cursor.rowcount > 0


def close_task_core(connection, task_id: int, *, now_iso: str) -> bool:
    cursor = connection.execute(
        '''
        UPDATE tasks
        SET is_active = 0, date_completed = ?, date_modification = ?
        WHERE id = ?
        ''',
        (now_iso, now_iso, task_id),
    )
    return cursor.rowcount > 0


def remove_task_core(connection, task_id: int) -> bool:
    connection.execute('DELETE FROM subtasks WHERE task_id = ?', (task_id,))
    connection.execute('DELETE FROM comments WHERE task_id = ?', (task_id,))
    cursor = connection.execute('DELETE FROM tasks WHERE id = ?', (task_id,))
    return cursor.rowcount > 0


def duplicate_task_core(connection, task_id: int, *, now_iso: str) -> int:
    task = get_task_core(connection, task_id)
    if task is None:
        return 0
    fields = {column: task[column] for column in COPIED_COLUMNS}
    fields['project_id'] = int(task['project_id'])
    new_task_id = _insert_task(connection, fields, now_iso=now_iso)
    _copy_subtasks(connection, source_task_id=task_id, target_task_id=new_task_id)
    return new_task_id


def duplicate_to_project_core(connection, task_id: int, project_id: int, *, now_iso: str) -> int:
    task = get_task_core(connection, task_id)
    if task is None or project_store_service.get_project_by_id_core(connection, project_id) is None:
        return 0
    fields = {column: task[column] for column in COPIED_COLUMNS}
    fields.update(_project_transfer_fields(connection, task, project_id=project_id))
    new_task_id = _insert_task(connection, fields, now_iso=now_iso)
    _copy_subtasks(connection, source_task_id=task_id, target_task_id=new_task_id)
    return new_task_id


def move_to_project_core(connection, task_id: int, project_id: int, *, now_iso: str) -> bool:
    task = get_task_core(connection, task_id)
    if task is None or project_store_service.get_project_by_id_core(connection, project_id) is None:
        return False
    fields = _project_transfer_fields(connection, task, project_id=project_id)
    fields['position'] = _next_position(connection, project_id=project_id, column_id=int(fields['column_id']))
    fields['date_modification'] = now_iso
    assignments = ', '.join(f'{name} = ?' for name in fields)
    cursor = connection.execute(
        f'UPDATE tasks SET {assignments} WHERE id = ?',
        (*fields.values(), task_id),
    )
    return cursor.rowcount > 0


def can_remove_task_core(connection, task: dict[str, object], *, user_id: int) -> bool:
    user = project_store_service.get_user_core(connection, user_id)
    if user is None:
        return False
    if user['is_admin']:
        return True
    if project_store_service.is_manager_core(connection, project_id=int(task['project_id']), user_id=user_id):
        return True
    return int(task.get('creator_id') or 0) == user_id
