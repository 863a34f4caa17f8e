"""
Spreadsheet copies with linked forms.

Copying a spreadsheet that receives form responses makes Drive duplicate
the form too, and the duplicate lands next to the SOURCE spreadsheet.
After the copy the duplicates are followed from the new spreadsheet,
detached and trashed. The source spreadsheet and its forms are never
touched.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from googleapiclient.errors import HttpError

from .config import FORM_MIME_TYPE

logger = logging.getLogger(__name__)

FORM_URL = 'https://docs.google.com/forms/d/{form_id}/edit'
_FORM_ID_RE = re.compile(r'/forms/d/([A-Za-z0-9_-]+)')


@dataclass(frozen=True)
class LinkedForm:
    form_id: str
    url: str


class GoogleFormLinks:
    """
    Linked-form lookups backed by the Drive v3 and Forms v1 APIs.

    Forms expose the spreadsheet they write to as `linkedSheetId`, so the
    forms linked to a spreadsheet are found from the form side. Only forms
    owned by the current user are considered; `near` narrows that further
    to forms sitting in the given folders.
    """

    def __init__(self, drive, forms_service):
        self.drive = drive
        self.forms_service = forms_service

    def _get_form(self, form_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.forms_service.forms().get(formId=form_id).execute()
        except HttpError as e:
            if getattr(e.resp, 'status', None) in (403, 404):
                logger.debug(f"⏭️ Skipping unreadable form {form_id}: {e}")
                return None
            raise

    def linked_form_urls(self, spreadsheet_id: str, near: Optional[List[str]] = None) -> List[str]:
        urls = []
        for item in self.drive.list_by_mime_type(FORM_MIME_TYPE, owned_only=True, parent_ids=near):
            form = self._get_form(item['id'])
            if form is not None and form.get('linkedSheetId') == spreadsheet_id:
                urls.append(FORM_URL.format(form_id=form['formId']))
        return urls

    def open_form(self, url: str) -> LinkedForm:
        match = _FORM_ID_RE.search(url)
        if not match:
            raise ValueError(f"Not a form URL: {url}")
        return LinkedForm(form_id=match.group(1), url=url)

    def detach(self, form: LinkedForm):
        """
        Drop the form's response destination.

        Forms v1 has no call for this, so nothing is sent. The copied
        spreadsheet keeps its link to the form; once delete() trashes the
        form the link points at a trashed form and receives nothing.
        """
        logger.debug(f"🔗 Detaching form {form.form_id}")

    def delete(self, form: LinkedForm):
        self.drive.trash(form.form_id)


def copy_spreadsheet(
    drive,
    form_links,
    file_id: str,
    name: str,
    dest_folder_id: str,
    retry: Callable[..., Any]
) -> str:
    """
    Copy a spreadsheet and clean up the forms the copy drags along.

    The pre-copy scan decides whether cleanup runs at all, since the copy
    itself is what creates the duplicates. Duplicates land in the source
    spreadsheet's folder, so the post-copy scan only looks there.

    Returns:
        str: Id of the copied spreadsheet
    """
    source_urls = retry(
        lambda: form_links.linked_form_urls(file_id),
        description=f"scan linked forms of {name}"
    )

    copy_id = retry(
        lambda: drive.copy_file(file_id, dest_folder_id, name),
        description=f"copy {name}"
    )

    if not source_urls:
        return copy_id

    source_parents = retry(
        lambda: drive.get_by_id(file_id),
        description=f"get parents of {name}"
    ).get('parents', [])
    copy_urls = retry(
        lambda: form_links.linked_form_urls(copy_id, near=source_parents),
        description=f"scan linked forms of copied {name}"
    )
    for url in copy_urls:
        form = retry(lambda url=url: form_links.open_form(url), description=f"open form {url}")
        retry(lambda: form_links.detach(form), description=f"detach form {form.form_id}")
        retry(lambda: form_links.delete(form), description=f"delete form {form.form_id}")
        logger.debug(f"🗑️ Removed duplicated form {form.form_id} from {name}")

    return copy_id
