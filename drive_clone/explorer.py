"""Read-only walk of the source hierarchy."""

import logging

from .models import FileNode, FolderNode

logger = logging.getLogger(__name__)


def explore_tree(drive, folder_id: str, name: str) -> FolderNode:
    """
    Build the progress tree for a source folder.

    Lists every file, then recurses into every child folder. Nothing is
    mutated and there is no deadline check: the walk runs to completion
    once, before any copying starts.

    Returns:
        FolderNode: fresh subtree with no destination ids
    """
    files = [
        FileNode(source_id=item['id'], name=item['name'], mime_type=item.get('mimeType'))
        for item in drive.list_files(folder_id)
    ]

    children = [
        explore_tree(drive, item['id'], item['name'])
        for item in drive.list_folders(folder_id)
    ]

    logger.debug(f"🔍 {name}: {len(files)} files, {len(children)} folders")
    return FolderNode(source_id=folder_id, name=name, files=files, children=children)
