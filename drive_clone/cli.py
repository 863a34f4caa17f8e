"""Command line entry point."""

import argparse
import logging
import re
import sys
import time
from typing import List, Optional

from .backoff import make_retry
from .config import LOG_LEVELS, RESUME_MODES, STATE_BACKENDS, CloneConfig, load_config
from .driver import CloneJob, JobOutcome
from .errors import CloneError
from .models import summarize
from .progress import DriveProgressStore, LocalProgressStore
from .scheduler import ManualScheduler, SubprocessScheduler

logger = logging.getLogger('drive_clone')


def setup_logging(level: str = 'INFO'):
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    # Suppress warnings
    logging.getLogger('google_auth_httplib2').setLevel(logging.ERROR)
    logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='drive-clone',
        description='Resumable Google Drive folder clone'
    )
    parser.add_argument('--config', help='JSON file with config overrides')
    parser.add_argument('--state-backend', choices=STATE_BACKENDS, help='Where the progress record lives')
    parser.add_argument('--log-level', choices=LOG_LEVELS, help='Logging level')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser('run', help='Run (or resume) the clone job')
    run_parser.add_argument('--source', dest='source_folder_id', help='Source folder ID')
    run_parser.add_argument('--dest-name', dest='dest_folder_name', help='Destination folder name')
    run_parser.add_argument('--dest-parent', dest='dest_parent_id', help="Destination parent folder ID (default: 'root')")
    run_parser.add_argument('--max-runtime', type=float, help='Seconds of work per execution')
    run_parser.add_argument('--retry-delay', type=float, help='Seconds before the next execution')
    run_parser.add_argument('--no-convert', action='store_true', help='Copy Office files as-is')
    run_parser.add_argument('--resume-mode', choices=RESUME_MODES, help='auto: re-run in background; manual: print instructions')
    run_parser.add_argument('--start-delay', type=float, default=0, help='Wait this many seconds before starting')
    run_parser.add_argument('--no-progress', action='store_true', help='Disable progress bars')

    subparsers.add_parser('status', help='Show saved progress')
    subparsers.add_parser('reset', help='Delete saved progress and trigger marker')

    return parser


def config_from_args(args: argparse.Namespace) -> CloneConfig:
    config = load_config(args.config)
    overrides = {
        'state_backend': args.state_backend,
        'log_level': args.log_level,
    }
    if args.command == 'run':
        overrides.update(
            source_folder_id=args.source_folder_id,
            dest_folder_name=args.dest_folder_name,
            dest_parent_id=args.dest_parent_id,
            max_runtime=args.max_runtime,
            retry_delay=args.retry_delay,
            resume_mode=args.resume_mode,
            convert_native_format=False if args.no_convert else None,
            show_progress=False if args.no_progress else None,
        )
    return config.with_overrides(**overrides)


def connect(config: CloneConfig):
    """
    Authenticate and build the Drive client and linked-form service.

    Returns:
        Tuple[DriveClient, GoogleFormLinks]
    """
    from .auth import build_services, get_credentials
    from .drive import DriveClient
    from .forms import GoogleFormLinks

    print("🔐 Authenticating with Google Drive...")
    creds = get_credentials(config.credentials_file, config.token_file)
    drive_service, forms_service = build_services(creds)
    drive = DriveClient(drive_service, chunk_size=config.chunk_size, show_progress=config.show_progress)
    return drive, GoogleFormLinks(drive, forms_service)


def make_store(config: CloneConfig, drive=None):
    if config.state_backend == 'local':
        return LocalProgressStore(config.local_state_path)
    return DriveProgressStore(
        drive,
        config.state_folder_id,
        config.state_filename,
        retry=make_retry(config.max_backoff_attempts, config.max_backoff)
    )


def job_name(config: CloneConfig) -> str:
    slug = re.sub(r'[^A-Za-z0-9_-]+', '_', config.dest_folder_name).strip('_') or 'job'
    return f"drive_clone_{slug}"


def rerun_command(argv: List[str]) -> List[str]:
    """Command line that re-runs this invocation, minus any --start-delay"""
    args = []
    skip = False
    for arg in argv:
        if skip:
            skip = False
            continue
        if arg == '--start-delay':
            skip = True
            continue
        if arg.startswith('--start-delay='):
            continue
        args.append(arg)
    return [sys.executable, '-m', 'drive_clone'] + args


def make_scheduler(config: CloneConfig, argv: List[str]):
    command = rerun_command(argv)
    if config.resume_mode == 'manual':
        return ManualScheduler(command)
    return SubprocessScheduler(job_name(config), command, config.trigger_dir)


def cmd_run(args: argparse.Namespace, config: CloneConfig, argv: List[str]) -> int:
    config.validate()

    if args.start_delay:
        logger.info(f"⏳ Waiting {args.start_delay}s before starting")
        time.sleep(args.start_delay)

    print("=" * 80)
    print("⚙️  CONFIGURATION:")
    print("=" * 80)
    print(f"📁 Source: {config.source_folder_id}")
    print(f"📁 Destination: {config.dest_parent_id}/{config.dest_folder_name}")
    print(f"⏱️ Max runtime: {config.max_runtime}s")
    print(f"🎯 Mode: {'MANUAL RESUME' if config.resume_mode == 'manual' else 'AUTO RESUME'}")
    print(f"💾 State: {config.state_backend}")
    print("=" * 80 + "\n")

    drive, form_links = connect(config)
    job = CloneJob(
        drive,
        make_store(config, drive),
        make_scheduler(config, argv),
        config,
        form_links=form_links
    )

    outcome = job.run()
    if outcome is JobOutcome.COMPLETED:
        print("\n✅ CLONE COMPLETED!")
        print(f"🔗 Link: https://drive.google.com/drive/folders/{job.tree.dest_id}")
    else:
        print("\n⏸️ CLONE PAUSED, progress saved")
    return 0


def cmd_status(config: CloneConfig) -> int:
    drive = None
    if config.state_backend == 'drive':
        drive, _ = connect(config)
    store = make_store(config, drive)
    tree = store.load()

    print("\n" + "=" * 80)
    print("📊 CLONE STATUS")
    print("=" * 80)
    if tree is None:
        print("No job in progress")
    else:
        print(f"Source: {tree.name} ({tree.source_id})")
        print(f"Destination: {tree.dest_id}")
        print(f"Folders created: {'yes' if tree.structure_done else 'no'}")
        print(summarize(tree))
    print("=" * 80 + "\n")
    return 0


def cmd_reset(config: CloneConfig) -> int:
    drive = None
    if config.state_backend == 'drive':
        drive, _ = connect(config)
    make_store(config, drive).clear()
    if config.resume_mode == 'auto':
        SubprocessScheduler(job_name(config), [], config.trigger_dir).cancel_pending()
    print("✅ Saved progress cleared")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    try:
        config = config_from_args(args)
        setup_logging(config.log_level)

        if args.command == 'run':
            return cmd_run(args, config, argv)
        if args.command == 'status':
            return cmd_status(config)
        return cmd_reset(config)

    except CloneError as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
