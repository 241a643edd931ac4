def register_routers(app, *, deps: dict[str, object]) -> None:
    routes_board = deps['routes_board']
    routes_task = deps['routes_task']

    view_deps = {
        'db_path': deps['db_path'],
        'sqlite_connect': deps['sqlite_connect'],
        'templates': deps['templates'],
        'pop_flash_messages': deps['pop_flash_messages'],
        'app_name': deps['app_name'],
    }

    app.include_router(routes_board.create_board_router(deps=view_deps))

    app.include_router(
        routes_task.create_task_router(
            deps={
                **view_deps,
                'utc_now_iso': deps['utc_now_iso'],
                'enforce_request_size': deps['enforce_request_size'],
                'default_body_limit_bytes': deps['default_body_limit_bytes'],
                'build_request_context': deps['build_request_context'],
                'record_workflow_outcome': deps['record_workflow_outcome'],
                'log_event': deps['log_event'],
                'date_format': deps['date_format'],
                'csrf_failure_policy': deps['csrf_failure_policy'],
            }
        )
    )
