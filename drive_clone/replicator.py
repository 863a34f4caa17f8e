"""
Two-phase copy of a progress tree.

Phase 1 (StructureReplicator) creates every destination folder, phase 2
(ContentReplicator) copies every file into folders that are known to
exist. Both walk depth-first, check the deadline before each unit of work,
record each new destination id as soon as the remote call returns and
return False when the deadline stops them. Returning False is not an
error: the tree stays consistent and the next execution picks up from it.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, List, Optional

from .config import FORMAT_CONVERSION_MAPPING, GOOGLE_SHEETS
from .deadline import DeadlineGuard
from .forms import copy_spreadsheet
from .models import FileNode, FolderNode

logger = logging.getLogger(__name__)


class _Replicator:

    def __init__(self, drive, deadline: DeadlineGuard, retry: Callable[..., Any]):
        self.drive = drive
        self.deadline = deadline
        self.retry = retry
        self._trail: List[str] = []

    @contextmanager
    def _inside(self, folder: FolderNode):
        self._trail.append(folder.name)
        try:
            yield
        finally:
            self._trail.pop()

    def _path(self, name: str = '') -> str:
        parts = self._trail + [name] if name else self._trail
        return '/' + '/'.join(parts)


class StructureReplicator(_Replicator):
    """Create destination folders for the whole tree"""

    def run(self, folder: FolderNode) -> bool:
        """
        Ensure every descendant folder of `folder` exists at the destination.

        `folder.dest_id` must already be set.

        Returns:
            bool: True when the subtree is done, False if the deadline hit
        """
        if folder.structure_done:
            return True

        if self.deadline.expired():
            return False

        with self._inside(folder):
            for child in folder.children:
                if child.dest_id is None:
                    if self.deadline.expired():
                        return False

                    logger.debug(f"📁 Creating folder {self._path(child.name)}")
                    child.dest_id = self.retry(
                        lambda: self.drive.create_folder(folder.dest_id, child.name),
                        description=f"create folder {self._path(child.name)}"
                    )

                if not self.run(child):
                    return False

        folder.structure_done = True
        return True


class ContentReplicator(_Replicator):
    """Copy every file of the tree into the already-created folders"""

    def __init__(
        self,
        drive,
        deadline: DeadlineGuard,
        retry: Callable[..., Any],
        convert_native_format: bool = True,
        form_links=None,
        on_copied: Optional[Callable[[FileNode], Any]] = None
    ):
        super().__init__(drive, deadline, retry)
        self.convert_native_format = convert_native_format
        self.form_links = form_links
        self.on_copied = on_copied

    def run(self, folder: FolderNode) -> bool:
        """
        Copy every file under `folder`, recursively.

        The folder's subtree must have `structure_done` set.

        Returns:
            bool: True when the subtree is done, False if the deadline hit
        """
        if folder.content_done:
            return True

        if self.deadline.expired():
            return False

        with self._inside(folder):
            for file_node in folder.files:
                if file_node.dest_id is not None:
                    continue

                if self.deadline.expired():
                    return False

                file_node.dest_id = self._copy(file_node, folder.dest_id)
                if self.on_copied:
                    self.on_copied(file_node)

            for child in folder.children:
                if not self.run(child):
                    return False

        folder.content_done = True
        return True

    def _mime_type(self, file_node: FileNode) -> str:
        if file_node.mime_type is None:
            info = self.retry(
                lambda: self.drive.get_by_id(file_node.source_id),
                description=f"get {self._path(file_node.name)}"
            )
            file_node.mime_type = info['mimeType']
        return file_node.mime_type

    def _copy(self, file_node: FileNode, dest_folder_id: str) -> str:
        path = self._path(file_node.name)
        mime_type = self._mime_type(file_node)

        if self.convert_native_format and mime_type in FORMAT_CONVERSION_MAPPING:
            target = FORMAT_CONVERSION_MAPPING[mime_type]
            logger.debug(f"📄 Copying {path} (format conversion to {target})")
            return self.retry(
                lambda: self.drive.create_converted(
                    file_node.source_id, file_node.name, dest_folder_id, mime_type, target
                ),
                description=f"convert {path}"
            )

        if mime_type == GOOGLE_SHEETS and self.form_links is not None:
            logger.debug(f"📊 Copying {path} (spreadsheet handling)")
            return copy_spreadsheet(
                self.drive,
                self.form_links,
                file_node.source_id,
                file_node.name,
                dest_folder_id,
                self.retry
            )

        logger.debug(f"📄 Copying {path}")
        return self.retry(
            lambda: self.drive.copy_file(file_node.source_id, dest_folder_id, file_node.name),
            description=f"copy {path}"
        )
