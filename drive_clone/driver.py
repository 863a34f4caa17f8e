"""
Resume driver.

Every execution either starts a fresh job (explore the source, create the
destination root) or picks up the saved progress tree, then runs the
structure phase and the content phase. Running out of time saves the tree
and schedules the next execution; finishing both phases deletes the saved
tree. A remote call that fails for good also saves the tree before the
error propagates, so nothing copied so far is copied again.
"""

import enum
import logging
import time
from typing import Any, Callable, Optional

from tqdm.auto import tqdm

from .backoff import make_retry
from .config import CloneConfig
from .deadline import DeadlineGuard
from .errors import BackoffExhaustedError, DestinationExistsError, DestinationMissingError
from .explorer import explore_tree
from .models import FolderNode, summarize
from .replicator import ContentReplicator, StructureReplicator

logger = logging.getLogger(__name__)


class JobOutcome(enum.Enum):
    COMPLETED = 'completed'
    INTERRUPTED = 'interrupted'


class CloneJob:
    """
    One execution of the clone job.

    Args:
        drive: DriveClient (or anything with the same methods)
        store: progress store with load/save/clear
        scheduler: re-invocation facility with schedule/clear_stale
        config: validated CloneConfig
        form_links: linked-form service; None disables spreadsheet handling
        deadline_factory: builds the DeadlineGuard at the start of run()
        sleep: used between backoff attempts
    """

    def __init__(
        self,
        drive,
        store,
        scheduler,
        config: CloneConfig,
        form_links=None,
        deadline_factory: Optional[Callable[[float], DeadlineGuard]] = None,
        sleep: Callable[[float], Any] = time.sleep
    ):
        self.drive = drive
        self.store = store
        self.scheduler = scheduler
        self.config = config
        self.form_links = form_links if config.handle_linked_forms else None
        self.deadline_factory = deadline_factory or DeadlineGuard
        self.retry = make_retry(config.max_backoff_attempts, config.max_backoff, sleep=sleep)
        self.tree: Optional[FolderNode] = None

    def _prepare(self) -> FolderNode:
        config = self.config
        tree = self.store.load()
        dest_id = self.retry(
            lambda: self.drive.find_folder(config.dest_parent_id, config.dest_folder_name),
            description=f"look up destination {config.dest_folder_name}"
        )

        if tree is None:
            if dest_id is not None:
                raise DestinationExistsError(
                    f"Destination folder {config.dest_folder_name!r} already exists "
                    f"under {config.dest_parent_id!r} and there is no saved progress"
                )

            logger.info("🔍 Exploring file tree to generate structure")
            source = self.retry(
                lambda: self.drive.get_by_id(config.source_folder_id),
                description="get source folder"
            )
            tree = self.retry(
                lambda: explore_tree(self.drive, config.source_folder_id, source['name']),
                description="explore source tree"
            )

            tree.dest_id = self.retry(
                lambda: self.drive.create_folder(config.dest_parent_id, config.dest_folder_name),
                description=f"create destination {config.dest_folder_name}"
            )
            logger.info(f"📁 Created destination folder {config.dest_folder_name}")
            return tree

        if dest_id is None:
            raise DestinationMissingError(
                f"Destination folder {config.dest_folder_name!r} does not exist, "
                f"but saved progress does ({self.store.describe()})"
            )
        if tree.dest_id != dest_id:
            raise DestinationMissingError(
                f"Destination folder {config.dest_folder_name!r} is {dest_id}, "
                f"but saved progress points at {tree.dest_id}"
            )

        logger.info("🔄 Resuming from prior run; using saved file tree")
        return tree

    def _replicate(self, tree: FolderNode, deadline: DeadlineGuard, summary) -> bool:
        logger.info("📁 Copying folder structure")
        started = time.time()
        done = StructureReplicator(self.drive, deadline, self.retry).run(tree)
        logger.info(f"⏱️ Copying folders: {time.time() - started:.2f}s")

        if not done:
            return False

        logger.info("📄 Copying files")
        started = time.time()
        pbar = tqdm(
            total=summary.total_files,
            initial=summary.files_copied,
            desc="📄 Files",
            unit='file',
            disable=not self.config.show_progress
        )
        try:
            done = ContentReplicator(
                self.drive,
                deadline,
                self.retry,
                convert_native_format=self.config.convert_native_format,
                form_links=self.form_links,
                on_copied=lambda _: pbar.update(1)
            ).run(tree)
        finally:
            pbar.close()
        logger.info(f"⏱️ Copying files: {time.time() - started:.2f}s")
        return done

    def run(self) -> JobOutcome:
        deadline = self.deadline_factory(self.config.max_runtime)
        tree = self.tree = self._prepare()

        summary = summarize(tree)
        logger.info(f"📊 {summary}")

        try:
            done = self._replicate(tree, deadline, summary)
        except BackoffExhaustedError:
            # ids recorded so far stay valid; no reschedule after a fatal error
            logger.error("💾 Saving progress before giving up")
            self.store.save(tree)
            raise

        if not done:
            logger.warning(
                f"⏸️ TIMED OUT! Retrying in {self.config.retry_delay}s through a new execution..."
            )
            self.store.save(tree)
            self.scheduler.schedule(self.config.retry_delay)
            logger.info(f"📊 {summarize(tree)}")
            return JobOutcome.INTERRUPTED

        self.store.clear()
        self.scheduler.clear_stale()
        logger.info("✅ Done copying!")
        logger.info(f"📊 {summarize(tree)}")
        return JobOutcome.COMPLETED
