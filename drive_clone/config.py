# -*- coding: utf-8 -*-
"""
Clone job configuration.

The module constants are the defaults; `CloneConfig` carries the values
explicitly into the job so nothing reads them as globals at run time.
"""

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from .errors import ConfigError

# ============================================================
# DEFAULTS
# ============================================================

# 📁 Folders
SOURCE_FOLDER_ID = ''              # ⚠️ REQUIRED (from .../drive/folders/<ID>)
DEST_FOLDER_NAME = ''              # ⚠️ REQUIRED, must not exist yet
DEST_PARENT_ID = 'root'

# ⏱️ Execution window
MAX_RUNTIME = 5 * 60               # Seconds per execution
RETRY_DELAY = 1                    # Seconds before the next execution

# 🔄 Copy behaviour
CONVERT_NATIVE_FORMAT = True       # Office files -> Docs/Sheets/Slides
HANDLE_LINKED_FORMS = True

# 🛡️ Exponential backoff
MAX_BACKOFF = 32                   # Max seconds between attempts
MAX_BACKOFF_ATTEMPTS = 20          # Retries after the first attempt

# 💾 Progress record
STATE_BACKEND = 'drive'            # 'drive' or 'local'
STATE_FILENAME = '_temp_clone_state.json'
STATE_FOLDER_ID = 'root'
LOCAL_STATE_DIR = '.'

# 🎯 Resume
RESUME_MODE = 'auto'               # 'auto' or 'manual'
TRIGGER_DIR = '.'

# 📝 Output
LOG_LEVEL = 'INFO'
SHOW_PROGRESS = True

# 🔐 Auth
CREDENTIALS_FILE = None            # OAuth client secrets; None -> default credentials
TOKEN_FILE = 'token.json'

CHUNK_SIZE = 10 * 1024 * 1024      # 10MB download chunks

# ============================================================
# MIME TYPES
# ============================================================

FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'
FORM_MIME_TYPE = 'application/vnd.google-apps.form'
GOOGLE_DOCS = 'application/vnd.google-apps.document'
GOOGLE_SHEETS = 'application/vnd.google-apps.spreadsheet'
GOOGLE_SLIDES = 'application/vnd.google-apps.presentation'

MICROSOFT_EXCEL = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
MICROSOFT_EXCEL_LEGACY = 'application/vnd.ms-excel'
MICROSOFT_POWERPOINT = 'application/vnd.openxmlformats-officedocument.presentationml.presentation'
MICROSOFT_POWERPOINT_LEGACY = 'application/vnd.ms-powerpoint'
MICROSOFT_WORD = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
MICROSOFT_WORD_LEGACY = 'application/msword'

FORMAT_CONVERSION_MAPPING = {
    MICROSOFT_EXCEL: GOOGLE_SHEETS,
    MICROSOFT_EXCEL_LEGACY: GOOGLE_SHEETS,
    MICROSOFT_POWERPOINT: GOOGLE_SLIDES,
    MICROSOFT_POWERPOINT_LEGACY: GOOGLE_SLIDES,
    MICROSOFT_WORD: GOOGLE_DOCS,
    MICROSOFT_WORD_LEGACY: GOOGLE_DOCS,
}

STATE_BACKENDS = ('drive', 'local')
RESUME_MODES = ('auto', 'manual')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


@dataclass(frozen=True)
class CloneConfig:
    source_folder_id: str = SOURCE_FOLDER_ID
    dest_folder_name: str = DEST_FOLDER_NAME
    dest_parent_id: str = DEST_PARENT_ID
    max_runtime: float = MAX_RUNTIME
    retry_delay: float = RETRY_DELAY
    convert_native_format: bool = CONVERT_NATIVE_FORMAT
    handle_linked_forms: bool = HANDLE_LINKED_FORMS
    max_backoff: float = MAX_BACKOFF
    max_backoff_attempts: int = MAX_BACKOFF_ATTEMPTS
    state_backend: str = STATE_BACKEND
    state_filename: str = STATE_FILENAME
    state_folder_id: str = STATE_FOLDER_ID
    local_state_dir: str = LOCAL_STATE_DIR
    resume_mode: str = RESUME_MODE
    trigger_dir: str = TRIGGER_DIR
    log_level: str = LOG_LEVEL
    show_progress: bool = SHOW_PROGRESS
    credentials_file: Optional[str] = CREDENTIALS_FILE
    token_file: str = TOKEN_FILE
    chunk_size: int = CHUNK_SIZE

    @property
    def local_state_path(self) -> str:
        return os.path.join(self.local_state_dir, self.state_filename)

    def with_overrides(self, **overrides: Any) -> 'CloneConfig':
        """Copy with every non-None override applied"""
        _check_keys(overrides)
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> 'CloneConfig':
        if not self.source_folder_id:
            raise ConfigError("source_folder_id is required")
        if not self.dest_folder_name:
            raise ConfigError("dest_folder_name is required")
        if self.max_runtime <= 0:
            raise ConfigError(f"max_runtime must be positive, got {self.max_runtime}")
        if self.max_backoff_attempts < 0:
            raise ConfigError(f"max_backoff_attempts must be >= 0, got {self.max_backoff_attempts}")
        if self.state_backend not in STATE_BACKENDS:
            raise ConfigError(f"state_backend must be one of {STATE_BACKENDS}, got {self.state_backend!r}")
        if self.resume_mode not in RESUME_MODES:
            raise ConfigError(f"resume_mode must be one of {RESUME_MODES}, got {self.resume_mode!r}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        return self


def _check_keys(data: Dict[str, Any]):
    known = {f.name for f in fields(CloneConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")


def load_config(path: Optional[str] = None) -> CloneConfig:
    """
    Load configuration overrides from a JSON file.

    Returns:
        CloneConfig: defaults when `path` is None
    """
    config = CloneConfig()
    if path is None:
        return config

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    _check_keys(data)
    return replace(config, **data)
