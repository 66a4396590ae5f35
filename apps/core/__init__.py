"""
Core app - Shared abstractions and utilities.

This app provides platform-agnostic building blocks used by every
domain app:
- Operation results and rejection codes (results)
- Invariant violations (exceptions)
- Task execution (TaskService)
- Fire-and-forget member notifications (notification_service)

Task execution can be switched between:
- Local development (sync execution)
- Celery + Redis (production)
"""
