"""In-memory collaborators shared by the workflow tests."""

from typing import Dict, List, Optional

from src.pipeweaver.events.emitter import EventEmitter
from src.pipeweaver.events.models import WorkflowEvent
from src.pipeweaver.repository.base import TreeFileNotFound

VALID_DEFINITION = b"""\
pipeline:
  name: orders_daily
  version: 1.0
  steps:
    - name: extract
      inputs:
        - type: postgres
          host: db
          database: shop
          table_name: orders
"""


class FakeTree:
    """In-memory VersionedTree recording calls in order."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self.files: Dict[str, bytes] = dict(files or {})
        self.written: Dict[str, bytes] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}

    def _record(self, operation, *args):
        self.calls.append((operation, *args))
        if operation in self.failures:
            raise self.failures[operation]

    def operations(self):
        return [call[0] for call in self.calls]

    async def read_file(self, path):
        self._record("read_file", path)
        if path not in self.files:
            raise TreeFileNotFound(path)
        return self.files[path]

    async def create_branch(self, name):
        self._record("create_branch", name)

    async def switch_branch(self, name):
        self._record("switch_branch", name)

    async def write_file(self, path, content):
        self._record("write_file", path)
        self.written[path] = content

    async def commit_and_push(self, message):
        self._record("commit_and_push", message)

    async def switch_to_default(self):
        self._record("switch_to_default")

    async def delete_branch(self, name):
        self._record("delete_branch", name)


class RecordingEmitter(EventEmitter):

    def __init__(self):
        self.events: List[WorkflowEvent] = []

    async def emit(self, event):
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if e.event_type == event_type]
