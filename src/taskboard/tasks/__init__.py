"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, Project, User, TaskStatus, Priority)
- task_store.py: SQLite-backed entity store with partial updates and cascade delete
- task_api.py: request handlers mapping store results/errors to status + JSON body
- subtask_progress.py: completed/total counts derived from a task's subtasks
"""
