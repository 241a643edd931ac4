import pytest

from services import db_schema_service, project_store_service, task_store_service

NOW = '2026-10-19T12:00:00+00:00'
LATER = '2026-10-20T08:30:00+00:00'
DATE_FORMAT = '%m/%d/%Y'


@pytest.fixture
def connection(tmp_path):
    conn = db_schema_service.sqlite_connect(str(tmp_path / 'store.db'))
    db_schema_service.ensure_schema(conn)
    db_schema_service.ensure_default_admin(conn, user_id=1)
    conn.execute("INSERT INTO users (id, username, name, is_admin) VALUES (2, 'dana', 'Dana', 0)")
    conn.execute("INSERT INTO users (id, username, name, is_admin) VALUES (3, 'lee', 'Lee', 0)")
    yield conn
    conn.close()


def _project(connection, name, owner_id=1):
    return project_store_service.create_project_core(connection, name=name, owner_id=owner_id, now_iso=NOW)


def _task(connection, project_id, **fields):
    values = {'project_id': project_id, 'title': 'Task', 'creator_id': 1, **fields}
    return task_store_service.create_task_core(connection, values, now_iso=NOW, date_format=DATE_FORMAT)


def test_create_project_adds_default_columns_and_manager(connection):
    project_id = _project(connection, 'Alpha', owner_id=2)
    assert list(project_store_service.columns_list_core(connection, project_id).values()) == list(
        project_store_service.DEFAULT_COLUMNS
    )
    assert project_store_service.is_manager_core(connection, project_id=project_id, user_id=2)


def test_create_task_normalizes_fields(connection):
    project_id = _project(connection, 'Alpha')
    task_id = _task(
        connection,
        project_id,
        title='  Trim me  ',
        color_id='neon',
        date_due='10/31/2026',
        score='5',
        time_estimated='2.5',
    )
    task = task_store_service.get_task_core(connection, task_id)
    assert task['title'] == 'Trim me'
    assert task['color_id'] == project_store_service.DEFAULT_COLOR
    assert task['date_due'] == '2026-10-31'
    assert task['score'] == 5
    assert task['time_estimated'] == 2.5
    assert task['column_id'] == project_store_service.first_column_id_core(connection, project_id)
    assert task['is_active'] == 1
    assert task['position'] == 1


def test_create_task_in_unknown_project_fails(connection):
    assert _task(connection, 999) == 0


def test_update_ignores_project_change(connection):
    project_id = _project(connection, 'Alpha')
    other_id = _project(connection, 'Beta')
    task_id = _task(connection, project_id)

    assert task_store_service.update_task_core(
        connection,
        {'id': task_id, 'title': 'Renamed', 'project_id': other_id},
        now_iso=LATER,
        date_format=DATE_FORMAT,
    )

    task = task_store_service.get_task_core(connection, task_id)
    assert task['title'] == 'Renamed'
    assert task['project_id'] == project_id
    assert task['date_modification'] == LATER


def test_update_unknown_task_fails(connection):
    assert not task_store_service.update_task_core(
        connection,
        {'id': 404, 'title': 'x'},
        now_iso=LATER,
        date_format=DATE_FORMAT,
    )


def test_close_and_open_toggle_completion(connection):
    task_id = _task(connection, _project(connection, 'Alpha'))

    assert task_store_service.close_task_core(connection, task_id, now_iso=LATER)
    task = task_store_service.get_task_core(connection, task_id)
    assert task['is_active'] == 0
    assert task['date_completed'] == LATER

    assert task_store_service.open_task_core(connection, task_id, now_iso=LATER)
    task = task_store_service.get_task_core(connection, task_id)
    assert task['is_active'] == 1
    assert task['date_completed'] is None


def test_remove_deletes_task_and_children(connection):
    task_id = _task(connection, _project(connection, 'Alpha'))
    connection.execute("INSERT INTO subtasks (task_id, title) VALUES (?, 'sub')", (task_id,))

    assert task_store_service.remove_task_core(connection, task_id)
    assert task_store_service.get_task_core(connection, task_id) is None
    assert task_store_service.list_subtasks_core(connection, task_id) == []
    assert not task_store_service.remove_task_core(connection, task_id)


def test_duplicate_copies_fields_and_resets_subtask_progress(connection):
    project_id = _project(connection, 'Alpha')
    task_id = _task(connection, project_id, title='Original', description='Body', owner_id=1)
    connection.execute(
        "INSERT INTO subtasks (task_id, title, status, time_estimated, time_spent) VALUES (?, 'sub', 2, 3, 1)",
        (task_id,),
    )

    copy_id = task_store_service.duplicate_task_core(connection, task_id, now_iso=LATER)

    assert copy_id and copy_id != task_id
    copy = task_store_service.get_task_core(connection, copy_id)
    assert copy['title'] == 'Original'
    assert copy['description'] == 'Body'
    assert copy['project_id'] == project_id
    subtasks = task_store_service.list_subtasks_core(connection, copy_id)
    assert [(item['title'], item['status'], item['time_spent']) for item in subtasks] == [('sub', 0, 0)]


def test_duplicate_to_project_remaps_column_and_drops_non_member_owner(connection):
    source_id = _project(connection, 'Alpha')
    project_store_service.add_member_core(connection, project_id=source_id, user_id=2)
    destination_id = _project(connection, 'Beta')
    task_id = _task(connection, source_id, owner_id=2, category_id=4)

    copy_id = task_store_service.duplicate_to_project_core(connection, task_id, destination_id, now_iso=LATER)

    copy = task_store_service.get_task_core(connection, copy_id)
    assert copy['project_id'] == destination_id
    assert copy['column_id'] == project_store_service.first_column_id_core(connection, destination_id)
    assert copy['owner_id'] == 0
    assert copy['category_id'] == 0
    assert task_store_service.get_task_core(connection, task_id)['project_id'] == source_id


def test_move_to_project_keeps_member_owner(connection):
    source_id = _project(connection, 'Alpha')
    destination_id = _project(connection, 'Beta')
    project_store_service.add_member_core(connection, project_id=destination_id, user_id=2)
    task_id = _task(connection, source_id, owner_id=2)

    assert task_store_service.move_to_project_core(connection, task_id, destination_id, now_iso=LATER)

    task = task_store_service.get_task_core(connection, task_id)
    assert task['project_id'] == destination_id
    assert task['owner_id'] == 2
    assert not task_store_service.move_to_project_core(connection, task_id, 999, now_iso=LATER)


def test_can_remove_task_for_admin_manager_or_creator(connection):
    project_id = _project(connection, 'Alpha', owner_id=2)
    project_store_service.add_member_core(connection, project_id=project_id, user_id=3)
    task = task_store_service.get_task_core(connection, _task(connection, project_id, creator_id=2))

    assert task_store_service.can_remove_task_core(connection, task, user_id=1)
    assert task_store_service.can_remove_task_core(connection, task, user_id=2)
    assert not task_store_service.can_remove_task_core(connection, task, user_id=3)

    own = task_store_service.get_task_core(connection, _task(connection, project_id, creator_id=3))
    assert task_store_service.can_remove_task_core(connection, own, user_id=3)


def test_accessible_projects_for_admin_and_member(connection):
    alpha = _project(connection, 'Alpha')
    beta = _project(connection, 'Beta', owner_id=2)

    assert project_store_service.accessible_projects_core(connection, user_id=1) == {alpha: 'Alpha', beta: 'Beta'}
    assert project_store_service.accessible_projects_core(connection, user_id=2) == {beta: 'Beta'}


def test_non_finite_hours_are_stored_as_zero(connection):
    task_id = _task(connection, _project(connection, 'Alpha'), time_estimated='inf', time_spent='nan')
    task = task_store_service.get_task_core(connection, task_id)
    assert task['time_estimated'] == 0.0
    assert task['time_spent'] == 0.0
