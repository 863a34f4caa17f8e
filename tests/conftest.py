"""
Pytest configuration and shared fakes for drive_clone tests.

FakeDrive keeps an in-memory Drive with the same surface as DriveClient
and records every mutation, so tests can assert on what was (not) done.
"""

import itertools
import re

import pytest

from drive_clone.config import FOLDER_MIME_TYPE, FORM_MIME_TYPE, GOOGLE_SHEETS
from drive_clone.forms import LinkedForm
from drive_clone.progress import dumps_tree, loads_tree

MUTATIONS = ('create_folder', 'copy_file', 'create_converted', 'create_file', 'update_content', 'trash')


class FakeDrive:

    def __init__(self):
        self.items = {}
        self.mutations = []
        self.failures = {}
        self.broken = set()
        self.copy_hooks = []
        self._ids = itertools.count(1)
        self.items['root'] = {
            'id': 'root', 'name': 'My Drive', 'mimeType': FOLDER_MIME_TYPE,
            'parents': [], 'trashed': False, 'content': b'',
        }

    # -- setup helpers --------------------------------------------

    def _add(self, parent_id, name, mime_type, item_id=None, content=b''):
        item_id = item_id or f"id{next(self._ids)}"
        self.items[item_id] = {
            'id': item_id, 'name': name, 'mimeType': mime_type,
            'parents': [parent_id], 'trashed': False, 'content': content,
        }
        return item_id

    def add_folder(self, parent_id, name, item_id=None):
        return self._add(parent_id, name, FOLDER_MIME_TYPE, item_id)

    def add_file(self, parent_id, name, mime_type='text/plain', item_id=None, content=b'data'):
        return self._add(parent_id, name, mime_type, item_id, content)

    def fail(self, op, times):
        """Make the next `times` calls of `op` raise"""
        self.failures[op] = times

    def _maybe_fail(self, op):
        if self.failures.get(op, 0) > 0:
            self.failures[op] -= 1
            raise RuntimeError(f"simulated {op} failure")

    def _record(self, op, *args):
        self._maybe_fail(op)
        self.mutations.append((op,) + args)

    def mutation_count(self, *ops):
        ops = ops or MUTATIONS
        return sum(1 for m in self.mutations if m[0] in ops)

    def children(self, parent_id):
        return [
            item for item in self.items.values()
            if parent_id in item['parents'] and not item['trashed']
        ]

    def paths(self, folder_id, prefix=''):
        """Sorted relative paths of everything under a folder"""
        result = []
        for item in self.children(folder_id):
            path = f"{prefix}/{item['name']}"
            result.append(path)
            if item['mimeType'] == FOLDER_MIME_TYPE:
                result.extend(self.paths(item['id'], path))
        return sorted(result)

    # -- DriveClient surface --------------------------------------

    def _summary(self, item):
        return {'id': item['id'], 'name': item['name'], 'mimeType': item['mimeType']}

    def list_files(self, folder_id):
        self._maybe_fail('list_files')
        return [self._summary(i) for i in self.children(folder_id) if i['mimeType'] != FOLDER_MIME_TYPE]

    def list_folders(self, folder_id):
        self._maybe_fail('list_folders')
        return [self._summary(i) for i in self.children(folder_id) if i['mimeType'] == FOLDER_MIME_TYPE]

    def list_by_mime_type(self, mime_type, owned_only=False, parent_ids=None):
        return [
            self._summary(i) for i in self.items.values()
            if i['mimeType'] == mime_type and not i['trashed']
            and (not parent_ids or set(i['parents']) & set(parent_ids))
        ]

    def get_by_id(self, item_id):
        item = self.items[item_id]
        return dict(self._summary(item), parents=list(item['parents']), trashed=item['trashed'])

    def find_folder(self, parent_id, name):
        for item in self.children(parent_id):
            if item['name'] == name and item['mimeType'] == FOLDER_MIME_TYPE:
                return item['id']
        return None

    def find_file(self, parent_id, name):
        self._maybe_fail('find_file')
        for item in self.children(parent_id):
            if item['name'] == name and item['mimeType'] != FOLDER_MIME_TYPE:
                return item['id']
        return None

    def create_folder(self, parent_id, name):
        self._record('create_folder', parent_id, name)
        return self.add_folder(parent_id, name)

    def copy_file(self, file_id, dest_folder_id, name):
        if file_id in self.broken:
            raise RuntimeError(f"simulated permanent failure copying {file_id}")
        self._record('copy_file', file_id, dest_folder_id, name)
        source = self.items[file_id]
        copy_id = self._add(dest_folder_id, name, source['mimeType'], content=source['content'])
        for hook in self.copy_hooks:
            hook(file_id, copy_id)
        return copy_id

    def create_converted(self, file_id, name, dest_folder_id, source_mime, target_mime):
        self._record('create_converted', file_id, name, dest_folder_id, source_mime, target_mime)
        return self._add(dest_folder_id, name, target_mime, content=self.items[file_id]['content'])

    def read_content(self, file_id):
        self._maybe_fail('read_content')
        return self.items[file_id]['content']

    def create_file(self, parent_id, name, content, mime_type='application/json'):
        self._record('create_file', parent_id, name)
        return self._add(parent_id, name, mime_type, content=content)

    def update_content(self, file_id, content, mime_type='application/json'):
        self._record('update_content', file_id)
        self.items[file_id]['content'] = content

    def trash(self, file_id):
        self._record('trash', file_id)
        self.items[file_id]['trashed'] = True


class FakeFormLinks:
    """
    Forms linked to spreadsheets.

    Copying a spreadsheet through the attached drive duplicates its linked
    forms into the source spreadsheet's folder, linked to the copy.
    """

    def __init__(self, drive):
        self.drive = drive
        self.links = {}
        self.detached = []
        self.deleted = []
        self.scans = []
        drive.copy_hooks.append(self._on_copy)

    def add_form(self, spreadsheet_id, name='Form'):
        parent_id = self.drive.items[spreadsheet_id]['parents'][0]
        form_id = self.drive._add(parent_id, name, FORM_MIME_TYPE)
        self.links[form_id] = spreadsheet_id
        return form_id

    def _on_copy(self, source_id, copy_id):
        if self.drive.items[source_id]['mimeType'] != GOOGLE_SHEETS:
            return
        for form_id, sheet_id in list(self.links.items()):
            if sheet_id == source_id:
                name = f"Copy of {self.drive.items[form_id]['name']}"
                new_id = self.drive._add(self.drive.items[source_id]['parents'][0], name, FORM_MIME_TYPE)
                self.links[new_id] = copy_id

    def forms_linked_to(self, spreadsheet_id):
        return [f for f, s in self.links.items() if s == spreadsheet_id]

    def linked_form_urls(self, spreadsheet_id, near=None):
        self.scans.append((spreadsheet_id, near))
        return [
            f"https://docs.google.com/forms/d/{f}/edit" for f in self.forms_linked_to(spreadsheet_id)
            if not near or set(self.drive.items[f]['parents']) & set(near)
        ]

    def open_form(self, url):
        form_id = re.search(r'/forms/d/([^/]+)', url).group(1)
        return LinkedForm(form_id=form_id, url=url)

    def detach(self, form):
        self.links[form.form_id] = None
        self.detached.append(form.form_id)

    def delete(self, form):
        self.drive.trash(form.form_id)
        self.deleted.append(form.form_id)


class CountdownDeadline:
    """Deadline that expires after `budget` checks have passed"""

    def __init__(self, budget):
        self.budget = budget
        self.checks = 0

    def expired(self):
        self.checks += 1
        return self.checks > self.budget


class NeverExpires:

    def expired(self):
        return False


class MemoryStore:
    """Progress store round-tripping through the real JSON encoding"""

    def __init__(self):
        self.raw = None
        self.saves = 0
        self.clears = 0

    def load(self):
        return None if self.raw is None else loads_tree(self.raw)

    def save(self, tree):
        self.raw = dumps_tree(tree)
        self.saves += 1

    def clear(self):
        self.raw = None
        self.clears += 1

    def describe(self):
        return 'memory'


class RecordingScheduler:

    def __init__(self):
        self.scheduled = []
        self.cleared = 0

    def schedule(self, delay):
        self.scheduled.append(delay)

    def clear_stale(self):
        self.cleared += 1


def no_retry(operation, description=''):
    return operation()


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def form_links(drive):
    return FakeFormLinks(drive)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def sample_source(drive):
    """
    Source folder A with files f1, f2 and subfolder B holding f3.

    Returns:
        str: id of A
    """
    a = drive.add_folder('root', 'A', item_id='A')
    drive.add_file(a, 'f1', item_id='f1')
    drive.add_file(a, 'f2', item_id='f2')
    b = drive.add_folder(a, 'B', item_id='B')
    drive.add_file(b, 'f3', item_id='f3')
    return a
