from taskflow.models.entities import (  # noqa: F401
    Task,
    TaskDraft,
    TaskValidationError,
    Identity,
    parse_due_date,
    parse_timestamp,
)
