"""Tests for the command line entry point."""

import sys

import pytest

from drive_clone import cli
from drive_clone.models import FileNode, FolderNode
from drive_clone.progress import LocalProgressStore
from drive_clone.scheduler import ManualScheduler, SubprocessScheduler

from conftest import FakeDrive


@pytest.fixture
def fake_connect(mocker):
    drive = FakeDrive()
    source = drive.add_folder('root', 'Src', item_id='S')
    drive.add_file(source, 'a.txt')
    mocker.patch.object(cli, 'connect', return_value=(drive, None))
    return drive


def test_rerun_command_strips_start_delay():
    command = cli.rerun_command(['run', '--source', 'S', '--start-delay', '5', '--start-delay=3'])

    assert command == [sys.executable, '-m', 'drive_clone', 'run', '--source', 'S']


def test_job_name_is_file_safe():
    config = cli.CloneConfig(dest_folder_name='My Copy / 2024')

    assert cli.job_name(config) == 'drive_clone_My_Copy_2024'


def test_make_scheduler_by_mode():
    manual = cli.make_scheduler(cli.CloneConfig(resume_mode='manual', dest_folder_name='D'), ['run'])
    auto = cli.make_scheduler(cli.CloneConfig(resume_mode='auto', dest_folder_name='D'), ['run'])

    assert isinstance(manual, ManualScheduler)
    assert isinstance(auto, SubprocessScheduler)


def test_drive_store_retries_with_configured_limits(mocker):
    retry = mocker.Mock()
    make_retry = mocker.patch.object(cli, 'make_retry', return_value=retry)
    config = cli.CloneConfig(state_backend='drive', max_backoff_attempts=3, max_backoff=8)

    store = cli.make_store(config, FakeDrive())

    make_retry.assert_called_once_with(3, 8)
    assert store.retry is retry


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 2


def test_run_missing_source_is_config_error():
    assert cli.main(['--state-backend', 'local', 'run', '--dest-name', 'D']) == 1


def test_run_completes(fake_connect, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    code = cli.main([
        '--state-backend', 'local', 'run',
        '--source', 'S', '--dest-name', 'Copy', '--no-progress',
    ])

    assert code == 0
    assert 'CLONE COMPLETED' in capsys.readouterr().out
    dest = fake_connect.find_folder('root', 'Copy')
    assert fake_connect.paths(dest) == ['/a.txt']


def test_run_existing_destination_fails(fake_connect, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    fake_connect.add_folder('root', 'Copy')

    code = cli.main([
        '--state-backend', 'local', 'run',
        '--source', 'S', '--dest-name', 'Copy', '--no-progress',
    ])

    assert code == 1


def test_status_and_reset_local(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    tree = FolderNode('S', 'Src', dest_id='d', files=[FileNode('a', 'a', dest_id='c'), FileNode('b', 'b')])
    LocalProgressStore(str(tmp_path / '_temp_clone_state.json')).save(tree)

    assert cli.main(['--state-backend', 'local', 'status']) == 0
    out = capsys.readouterr().out
    assert 'Copied files: 1 / 2' in out

    assert cli.main(['--state-backend', 'local', 'reset']) == 0
    assert not (tmp_path / '_temp_clone_state.json').exists()

    assert cli.main(['--state-backend', 'local', 'status']) == 0
    assert 'No job in progress' in capsys.readouterr().out


def test_reset_cancels_pending_rerun(tmp_path, monkeypatch, mocker):
    monkeypatch.chdir(tmp_path)
    cancel = mocker.patch.object(SubprocessScheduler, 'cancel_pending', return_value=True)

    assert cli.main(['--state-backend', 'local', 'reset']) == 0

    cancel.assert_called_once_with()
