"""Resumable Google Drive folder clone."""

from .config import CloneConfig, load_config
from .driver import CloneJob, JobOutcome
from .errors import (
    BackoffExhaustedError,
    CloneError,
    ConfigError,
    DestinationExistsError,
    DestinationMissingError,
    PreconditionError,
    ProgressStoreError,
)
from .models import FileNode, FolderNode, TreeSummary, summarize

__version__ = '1.0.0'

__all__ = [
    'BackoffExhaustedError',
    'CloneConfig',
    'CloneError',
    'CloneJob',
    'ConfigError',
    'DestinationExistsError',
    'DestinationMissingError',
    'FileNode',
    'FolderNode',
    'JobOutcome',
    'PreconditionError',
    'ProgressStoreError',
    'TreeSummary',
    'load_config',
    'summarize',
]
