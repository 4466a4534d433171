"""Agency identifier generators."""

from __future__ import annotations

import uuid


class UuidV4Generator:
    def new(self) -> str:
        return str(uuid.uuid4())


class TestUuidGenerator:
    """Returns queued identifiers in order; raises when the queue is empty."""

    __test__ = False  # not a pytest test class

    def __init__(self) -> None:
        self._next: list[str] = []

    def set_next_uuid(self, *uuids: str) -> None:
        self._next = list(uuids)

    def new(self) -> str:
        if not self._next:
            raise RuntimeError("TestUuidGenerator: no uuid queued")
        return self._next.pop(0)
