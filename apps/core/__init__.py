"""
Core app - Shared abstractions and utilities.

This app provides platform-agnostic pieces used by every other app:
- Domain exceptions and their HTTP rendering (exceptions, api_errors)
- Task execution (TaskService) with local and Celery backends
- The `seed` management command for demo data
"""
