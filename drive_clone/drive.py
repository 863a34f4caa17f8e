"""
Google Drive v3 client.

Plain wrappers around the API resource. HttpError is never caught here;
callers route mutations through the backoff executor.
"""

import io
import logging
from typing import Any, Dict, List, Optional

from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload
from tqdm.auto import tqdm

from .config import CHUNK_SIZE, FOLDER_MIME_TYPE

logger = logging.getLogger(__name__)

LIST_FIELDS = 'nextPageToken, files(id, name, mimeType)'
FILE_FIELDS = 'id, name, mimeType, parents, trashed'


def _escape(value: str) -> str:
    """Escape a literal for a Drive search query"""
    return value.replace('\\', '\\\\').replace("'", "\\'")


class DriveClient:
    """Drive operations used by the clone job"""

    def __init__(self, service, chunk_size: int = CHUNK_SIZE, show_progress: bool = True):
        self.service = service
        self.chunk_size = chunk_size
        self.show_progress = show_progress

    # ------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------

    def _list(self, query: str) -> List[Dict[str, Any]]:
        items = []
        page_token = None

        while True:
            response = self.service.files().list(
                q=query,
                fields=LIST_FIELDS,
                pageToken=page_token,
                pageSize=100
            ).execute()

            items.extend(response.get('files', []))
            page_token = response.get('nextPageToken')

            if not page_token:
                break

        return items

    def list_files(self, folder_id: str) -> List[Dict[str, Any]]:
        """List non-folder children of a folder"""
        return self._list(
            f"'{_escape(folder_id)}' in parents and trashed=false "
            f"and mimeType!='{FOLDER_MIME_TYPE}'"
        )

    def list_folders(self, folder_id: str) -> List[Dict[str, Any]]:
        """List child folders of a folder"""
        return self._list(
            f"'{_escape(folder_id)}' in parents and trashed=false "
            f"and mimeType='{FOLDER_MIME_TYPE}'"
        )

    def list_by_mime_type(
        self,
        mime_type: str,
        owned_only: bool = False,
        parent_ids: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        List every visible item of one MIME type.

        Args:
            owned_only: only items owned by the authenticated user
            parent_ids: only items directly inside one of these folders
        """
        query = f"mimeType='{_escape(mime_type)}' and trashed=false"
        if owned_only:
            query += " and 'me' in owners"
        if parent_ids:
            parents = ' or '.join(f"'{_escape(p)}' in parents" for p in parent_ids)
            query += f" and ({parents})"
        return self._list(query)

    def get_by_id(self, item_id: str) -> Dict[str, Any]:
        return self.service.files().get(fileId=item_id, fields=FILE_FIELDS).execute()

    def _find(self, parent_id: str, name: str, folder: bool) -> Optional[str]:
        op = '=' if folder else '!='
        items = self._list(
            f"'{_escape(parent_id)}' in parents and name='{_escape(name)}' "
            f"and trashed=false and mimeType{op}'{FOLDER_MIME_TYPE}'"
        )
        return items[0]['id'] if items else None

    def find_folder(self, parent_id: str, name: str) -> Optional[str]:
        """Id of the first folder with this exact name under parent, if any"""
        return self._find(parent_id, name, folder=True)

    def find_file(self, parent_id: str, name: str) -> Optional[str]:
        return self._find(parent_id, name, folder=False)

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------

    def create_folder(self, parent_id: str, name: str) -> str:
        folder = self.service.files().create(
            body={
                'name': name,
                'mimeType': FOLDER_MIME_TYPE,
                'parents': [parent_id]
            },
            fields='id, name'
        ).execute()
        return folder['id']

    def copy_file(self, file_id: str, dest_folder_id: str, name: str) -> str:
        copied = self.service.files().copy(
            fileId=file_id,
            body={'name': name, 'parents': [dest_folder_id]},
            fields='id, name'
        ).execute()
        return copied['id']

    def download(self, file_id: str, label: str = '') -> io.BytesIO:
        """Download file content into memory, chunk by chunk"""
        buffer = io.BytesIO()
        request = self.service.files().get_media(fileId=file_id)
        downloader = MediaIoBaseDownload(buffer, request, chunksize=self.chunk_size)

        pbar = tqdm(
            total=100,
            desc=f"📥 {label[:30]}",
            unit='%',
            leave=False,
            disable=not self.show_progress
        )
        try:
            done = False
            while not done:
                status, done = downloader.next_chunk()
                if status:
                    pbar.update(int(status.progress() * 100) - pbar.n)
        finally:
            pbar.close()

        buffer.seek(0)
        return buffer

    def create_converted(
        self,
        file_id: str,
        name: str,
        dest_folder_id: str,
        source_mime: str,
        target_mime: str
    ) -> str:
        """
        Re-create a file's bytes under a native Google type.

        Drive converts on upload when the body's mimeType differs from the
        media's.

        Returns:
            str: Id of the converted file
        """
        content = self.download(file_id, label=name)
        media = MediaIoBaseUpload(
            content,
            mimetype=source_mime,
            chunksize=self.chunk_size,
            resumable=True
        )
        created = self.service.files().create(
            body={
                'name': name,
                'parents': [dest_folder_id],
                'mimeType': target_mime
            },
            media_body=media,
            fields='id, name'
        ).execute()
        return created['id']

    def read_content(self, file_id: str) -> bytes:
        return self.service.files().get_media(fileId=file_id).execute()

    def create_file(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        mime_type: str = 'application/json'
    ) -> str:
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type)
        created = self.service.files().create(
            body={'name': name, 'parents': [parent_id]},
            media_body=media,
            fields='id'
        ).execute()
        return created['id']

    def update_content(self, file_id: str, content: bytes, mime_type: str = 'application/json'):
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type)
        self.service.files().update(fileId=file_id, media_body=media, fields='id').execute()

    def trash(self, file_id: str):
        """Mark a file for deletion"""
        self.service.files().update(
            fileId=file_id,
            body={'trashed': True},
            fields='id'
        ).execute()
