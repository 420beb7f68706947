from intake.registry.store import (
    delete_expired_sessions,
    delete_session,
    init_db,
    list_submissions,
    load_session,
    record_submission,
    save_session,
    submissions_for_session,
)

__all__ = [
    "delete_expired_sessions",
    "delete_session",
    "init_db",
    "list_submissions",
    "load_session",
    "record_submission",
    "save_session",
    "submissions_for_session",
]
