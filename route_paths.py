HEALTH = '/health'
METRICS = '/metrics'

PROJECT_BOARD = '/projects/{project_id}/board'

TASK_CREATE = '/projects/{project_id}/tasks/new'
TASK_SHOW = '/projects/{project_id}/tasks/{task_id}'
TASK_PUBLIC = '/public/tasks/{task_id}'
TASK_EDIT = '/projects/{project_id}/tasks/{task_id}/edit'
TASK_TIME = '/projects/{project_id}/tasks/{task_id}/time'
TASK_DESCRIPTION = '/projects/{project_id}/tasks/{task_id}/description'
TASK_OPEN = '/projects/{project_id}/tasks/{task_id}/open'
TASK_CLOSE = '/projects/{project_id}/tasks/{task_id}/close'
TASK_REMOVE = '/projects/{project_id}/tasks/{task_id}/remove'
TASK_DUPLICATE = '/projects/{project_id}/tasks/{task_id}/duplicate'
TASK_MOVE = '/projects/{project_id}/tasks/{task_id}/move'
TASK_COPY = '/projects/{project_id}/tasks/{task_id}/copy'
