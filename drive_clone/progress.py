"""
Progress record persistence.

The whole tree is written and read as a single JSON document; there are
no partial updates. Two places can hold the record: a file in Drive
(survives the host being wiped) or a local file.
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Callable, Optional

from .errors import ProgressStoreError
from .models import FolderNode

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def dumps_tree(tree: FolderNode) -> bytes:
    record = {
        'version': STATE_VERSION,
        'saved_at': datetime.now().isoformat(),
        'tree': tree.to_dict()
    }
    return json.dumps(record, ensure_ascii=False).encode('utf-8')


def loads_tree(raw: bytes) -> FolderNode:
    """
    Parse a progress record.

    Raises:
        ProgressStoreError: on anything that is not a well-formed record
    """
    try:
        record = json.loads(raw.decode('utf-8') if isinstance(raw, bytes) else raw)
        if record.get('version') != STATE_VERSION:
            raise ValueError(f"unsupported version {record.get('version')!r}")
        return FolderNode.from_dict(record['tree'])
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ProgressStoreError(f"Corrupted progress record: {e}") from e


class LocalProgressStore:
    """Progress record in a local JSON file, written atomically"""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[FolderNode]:
        if not os.path.exists(self.path):
            return None

        try:
            with open(self.path, 'rb') as f:
                raw = f.read()
        except OSError as e:
            raise ProgressStoreError(f"Cannot read {self.path}: {e}") from e

        tree = loads_tree(raw)
        logger.info(f"📂 Loaded state from {self.path}")
        return tree

    def save(self, tree: FolderNode):
        temp_file = self.path + '.tmp'
        try:
            with open(temp_file, 'wb') as f:
                f.write(dumps_tree(tree))
            os.replace(temp_file, self.path)
        except OSError as e:
            raise ProgressStoreError(f"Cannot write {self.path}: {e}") from e
        logger.info(f"💾 State saved to {self.path}")

    def clear(self):
        if os.path.exists(self.path):
            os.remove(self.path)
            logger.info(f"🧹 Removed state file {self.path}")

    def describe(self) -> str:
        return self.path


def _call_once(operation, description=None):
    return operation()


class DriveProgressStore:
    """
    Progress record as a file in a fixed Drive folder.

    Args:
        drive: DriveClient
        folder_id: folder holding the record
        filename: record file name
        retry: wraps every Drive call; see backoff.make_retry
    """

    def __init__(
        self,
        drive,
        folder_id: str = 'root',
        filename: str = '_temp_clone_state.json',
        retry: Optional[Callable[..., Any]] = None
    ):
        self.drive = drive
        self.folder_id = folder_id
        self.filename = filename
        self.retry = retry or _call_once

    def _record_id(self) -> Optional[str]:
        return self.retry(
            lambda: self.drive.find_file(self.folder_id, self.filename),
            description=f"look up {self.filename}"
        )

    def load(self) -> Optional[FolderNode]:
        record_id = self._record_id()
        if record_id is None:
            return None

        raw = self.retry(
            lambda: self.drive.read_content(record_id),
            description=f"read {self.filename}"
        )
        tree = loads_tree(raw)
        logger.info(f"📂 Loaded state from Drive file {self.filename}")
        return tree

    def save(self, tree: FolderNode):
        content = dumps_tree(tree)
        record_id = self._record_id()
        if record_id is None:
            self.retry(
                lambda: self.drive.create_file(self.folder_id, self.filename, content),
                description=f"create {self.filename}"
            )
        else:
            self.retry(
                lambda: self.drive.update_content(record_id, content),
                description=f"update {self.filename}"
            )
        logger.info(f"💾 State saved to Drive file {self.filename}")

    def clear(self):
        record_id = self._record_id()
        if record_id is not None:
            self.retry(lambda: self.drive.trash(record_id), description=f"trash {self.filename}")
            logger.info(f"🧹 Trashed Drive state file {self.filename}")

    def describe(self) -> str:
        return f"drive:{self.folder_id}/{self.filename}"
