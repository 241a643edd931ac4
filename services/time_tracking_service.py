def task_timesheet_core(task: dict[str, object], subtasks: list[dict[str, object]]) -> dict[str, float]:
    """Aggregate estimated and spent hours for a task.

    Subtask hours take precedence when any subtask carries a value, which is
    how a task broken into subtasks is tracked.
    """
    subtask_estimated = sum(float(item.get('time_estimated') or 0) for item in subtasks)
    subtask_spent = sum(float(item.get('time_spent') or 0) for item in subtasks)
    time_estimated = subtask_estimated if subtask_estimated > 0 else float(task.get('time_estimated') or 0)
    time_spent = subtask_spent if subtask_spent > 0 else float(task.get('time_spent') or 0)
    return {
        'time_estimated': time_estimated,
        'time_spent': time_spent,
        'time_remaining': time_estimated - time_spent,
    }
