"""
Progress tree.

One FolderNode per source folder, one FileNode per source file. The tree is
built once by the explorer, then mutated in place by the replicators and
persisted verbatim between executions.

A set `dest_id` means the destination object exists and must never be
created again.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass
class FileNode:
    source_id: str
    name: str
    mime_type: Optional[str] = None
    dest_id: Optional[str] = None

    @property
    def copied(self) -> bool:
        return self.dest_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_id': self.source_id,
            'name': self.name,
            'mime_type': self.mime_type,
            'dest_id': self.dest_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileNode':
        return cls(
            source_id=data['source_id'],
            name=data['name'],
            mime_type=data.get('mime_type'),
            dest_id=data.get('dest_id'),
        )


@dataclass
class FolderNode:
    """
    Folder in the progress tree.

    `structure_done`: this folder and every descendant folder exist at the
    destination.
    `content_done`: every file in this folder and, recursively, in every
    descendant folder has been copied.
    """

    source_id: str
    name: str
    dest_id: Optional[str] = None
    structure_done: bool = False
    content_done: bool = False
    files: List[FileNode] = field(default_factory=list)
    children: List['FolderNode'] = field(default_factory=list)

    def walk(self) -> Iterator['FolderNode']:
        """Pre-order over this folder and all descendants"""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_id': self.source_id,
            'name': self.name,
            'dest_id': self.dest_id,
            'structure_done': self.structure_done,
            'content_done': self.content_done,
            'files': [f.to_dict() for f in self.files],
            'children': [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FolderNode':
        return cls(
            source_id=data['source_id'],
            name=data['name'],
            dest_id=data.get('dest_id'),
            structure_done=bool(data.get('structure_done', False)),
            content_done=bool(data.get('content_done', False)),
            files=[FileNode.from_dict(f) for f in data.get('files', [])],
            children=[cls.from_dict(c) for c in data.get('children', [])],
        )


@dataclass(frozen=True)
class TreeSummary:
    files_copied: int
    total_files: int
    folders_copied: int
    total_folders: int

    @property
    def copied(self) -> int:
        return self.files_copied + self.folders_copied

    @property
    def total(self) -> int:
        return self.total_files + self.total_folders

    def __str__(self):
        return (
            f"Total copied: {self.copied} / {self.total}\n"
            f"Copied files: {self.files_copied} / {self.total_files}\n"
            f"Copied folders: {self.folders_copied} / {self.total_folders}"
        )


def summarize(tree: FolderNode) -> TreeSummary:
    """Count copied vs. total files and folders, root folder included"""
    files_copied = total_files = folders_copied = total_folders = 0

    for folder in tree.walk():
        total_folders += 1
        folders_copied += folder.dest_id is not None
        for f in folder.files:
            total_files += 1
            files_copied += f.dest_id is not None

    return TreeSummary(files_copied, total_files, folders_copied, total_folders)
