"""
Async facade over mongomock, shaped like the slice of motor the handlers use:
awaitable collection methods and cursors that support ``async for``.
"""
import uuid

import mongomock

_AWAITABLE = {
    "find_one", "insert_one", "insert_many", "update_one", "update_many",
    "delete_one", "delete_many", "count_documents", "create_index",
    "find_one_and_update",
}


class AsyncCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, *args, **kwargs):
        self._cursor = self._cursor.sort(*args, **kwargs)
        return self

    def limit(self, n):
        self._cursor = self._cursor.limit(n)
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._cursor:
            yield doc

    async def to_list(self, length=None):
        docs = list(self._cursor)
        return docs if length is None else docs[:length]


class AsyncCollection:
    def __init__(self, collection):
        self.sync = collection

    def find(self, *args, **kwargs):
        return AsyncCursor(self.sync.find(*args, **kwargs))

    def __getattr__(self, name):
        attr = getattr(self.sync, name)
        if name not in _AWAITABLE:
            return attr

        async def call(*args, **kwargs):
            return attr(*args, **kwargs)
        return call


class AsyncDatabase:
    def __init__(self, name=None):
        self.sync = mongomock.MongoClient(tz_aware=True)[name or f"blog_test_{uuid.uuid4().hex}"]

    def __getitem__(self, name):
        return AsyncCollection(self.sync[name])
