import secrets

DEFAULT_COLUMNS = ('Backlog', 'Ready', 'Work in progress', 'Done')

COLOR_LIST: dict[str, str] = {
    'yellow': 'Yellow',
    'blue': 'Blue',
    'green': 'Green',
    'purple': 'Purple',
    'red': 'Red',
    'orange': 'Orange',
    'grey': 'Grey',
}
DEFAULT_COLOR = 'yellow'


def create_project_core(
    connection,
    *,
    name: str,
    owner_id: int,
    now_iso: str,
    is_public: bool = False,
) -> int:
    cursor = connection.execute(
        '''
        INSERT INTO projects (name, is_active, is_public, token, created_at)
        VALUES (?, 1, ?, ?, ?)
        ''',
        (str(name).strip(), 1 if is_public else 0, secrets.token_hex(16) if is_public else '', now_iso),
    )
    project_id = int(cursor.lastrowid)
    for position, title in enumerate(DEFAULT_COLUMNS, start=1):
        connection.execute(
            'INSERT INTO columns (project_id, title, position) VALUES (?, ?, ?)',
            (project_id, title, position),
        )
    add_member_core(connection, project_id=project_id, user_id=owner_id, is_manager=True)
    return project_id


def add_member_core(connection, *, project_id: int, user_id: int, is_manager: bool = False) -> None:
    connection.execute(
        '''
        INSERT INTO project_members (project_id, user_id, is_manager)
        VALUES (?, ?, ?)
        ON CONFLICT(project_id, user_id) DO UPDATE SET is_manager = excluded.is_manager
        ''',
        (project_id, user_id, 1 if is_manager else 0),
    )


def get_project_by_id_core(connection, project_id: int) -> dict[str, object] | None:
    row = connection.execute(
        'SELECT id, name, is_active, is_public, token FROM projects WHERE id = ?',
        (project_id,),
    ).fetchone()
    return dict(row) if row is not None else None


def get_project_by_token_core(connection, token: str) -> dict[str, object] | None:
    normalized = str(token or '').strip()
    if not normalized:
        return None
    row = connection.execute(
        '''
        SELECT id, name, is_active, is_public, token
        FROM projects
        WHERE token = ? AND is_public = 1
        ''',
        (normalized,),
    ).fetchone()
    return dict(row) if row is not None else None


def get_user_core(connection, user_id: int) -> dict[str, object] | None:
    row = connection.execute(
        'SELECT id, username, name, is_admin FROM users WHERE id = ?',
        (user_id,),
    ).fetchone()
    return dict(row) if row is not None else None


def is_member_core(connection, *, project_id: int, user_id: int) -> bool:
    row = connection.execute(
        'SELECT 1 FROM project_members WHERE project_id = ? AND user_id = ?',
        (project_id, user_id),
    ).fetchone()
    return row is not None


def is_manager_core(connection, *, project_id: int, user_id: int) -> bool:
    row = connection.execute(
        'SELECT is_manager FROM project_members WHERE project_id = ? AND user_id = ?',
        (project_id, user_id),
    ).fetchone()
    return bool(row is not None and row[0])


def user_can_access_project_core(connection, *, project_id: int, user_id: int) -> bool:
    user = get_user_core(connection, user_id)
    if user is not None and user['is_admin']:
        return True
    return is_member_core(connection, project_id=project_id, user_id=user_id)


def active_member_projects_core(connection, *, user_id: int) -> dict[int, str]:
    rows = connection.execute(
        '''
        SELECT p.id, p.name
        FROM projects p
        JOIN project_members m ON m.project_id = p.id
        WHERE m.user_id = ? AND p.is_active = 1
        ORDER BY p.name COLLATE NOCASE, p.id
        ''',
        (user_id,),
    ).fetchall()
    return {int(row[0]): str(row[1]) for row in rows}


def active_projects_core(connection) -> dict[int, str]:
    rows = connection.execute(
        'SELECT id, name FROM projects WHERE is_active = 1 ORDER BY name COLLATE NOCASE, id'
    ).fetchall()
    return {int(row[0]): str(row[1]) for row in rows}


def accessible_projects_core(connection, *, user_id: int) -> dict[int, str]:
    user = get_user_core(connection, user_id)
    if user is not None and user['is_admin']:
        return active_projects_core(connection)
    return active_member_projects_core(connection, user_id=user_id)


def columns_list_core(connection, project_id: int) -> dict[int, str]:
    rows = connection.execute(
        'SELECT id, title FROM columns WHERE project_id = ? ORDER BY position, id',
        (project_id,),
    ).fetchall()
    return {int(row[0]): str(row[1]) for row in rows}


def first_column_id_core(connection, project_id: int) -> int:
    row = connection.execute(
        'SELECT id FROM columns WHERE project_id = ? ORDER BY position, id LIMIT 1',
        (project_id,),
    ).fetchone()
    return int(row[0]) if row is not None else 0


def member_list_core(connection, project_id: int, *, unassigned: bool = True) -> dict[int, str]:
    members: dict[int, str] = {0: 'Unassigned'} if unassigned else {}
    rows = connection.execute(
        '''
        SELECT u.id, COALESCE(NULLIF(u.name, ''), u.username)
        FROM users u
        JOIN project_members m ON m.user_id = u.id
        WHERE m.project_id = ?
        ORDER BY 2 COLLATE NOCASE
        ''',
        (project_id,),
    ).fetchall()
    members.update({int(row[0]): str(row[1]) for row in rows})
    return members


def category_list_core(connection, project_id: int) -> dict[int, str]:
    categories: dict[int, str] = {0: 'No category'}
    rows = connection.execute(
        'SELECT id, name FROM categories WHERE project_id = ? ORDER BY name COLLATE NOCASE',
        (project_id,),
    ).fetchall()
    categories.update({int(row[0]): str(row[1]) for row in rows})
    return categories
