# backend/pagegate/shared/errors.py
"""Exceptions shared by the security and locks packages.

Access denial and lock conflicts are not errors: the guard returns a
``Decision`` and the lock manager returns a ``LockResult``. What lives here
are the failures a caller cannot turn into a normal answer.
"""


class PageGateError(Exception):
    pass


class RandomnessUnavailable(PageGateError):
    """The OS random source could not produce bytes for a salt."""


class StorageUnavailable(PageGateError):
    """The lock table (or its database) could not be read or written."""


class NotLockHolder(PageGateError):
    def __init__(self, resource: str, resource_id: int, actor_id: int | None):
        self.resource = resource
        self.resource_id = resource_id
        self.actor_id = actor_id
        super().__init__(f"{resource}#{resource_id} is not locked by user {actor_id}")
