# src/taskboard/core/errors.py

"""
Error taxonomy shared by the store, the API boundary and the board client.

Server side:
- ValidationError -> 400
- NotFoundError   -> 404
- StoreError      -> 500 (generic message, no retry)

Client side:
- ApiError          -> non-200 response seen by the API client
- BoardLoadError    -> full reload failed, previous snapshot kept
- BoardActionError  -> a mutation failed, no reload issued
- NotSignedInError  -> board operation attempted without a session
"""

from __future__ import annotations


class TaskBoardError(Exception):
    """Base class for every error raised by taskboard."""


class ValidationError(TaskBoardError):
    pass


class NotFoundError(TaskBoardError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind.capitalize()} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class StoreError(TaskBoardError):
    pass


class ApiError(TaskBoardError):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = int(status)
        self.message = message


class BoardLoadError(TaskBoardError):
    pass


class BoardActionError(TaskBoardError):
    def __init__(self, action: str, cause: Exception) -> None:
        super().__init__(f"{action} failed: {cause}")
        self.action = action
        self.cause = cause


class NotSignedInError(TaskBoardError):
    pass
