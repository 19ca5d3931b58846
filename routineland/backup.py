"""Backup export and import.

A backup is one JSON document holding the stored goal state plus the
per-timeframe UI preferences. Import is all-or-nothing: the document is
fully parsed and validated before anything is written.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import Field

from routineland.goals.migration import sanitize_state
from routineland.goals.models import TIMEFRAMES, StoredState, Timeframe, UiPrefs, WireModel
from routineland.storage.repository import StateRepository, sanitize_prefs

logger = logging.getLogger(__name__)

APP_TAG = "routineland"
SCHEMA_VERSION = 1


class BackupError(Exception):
    """Backup document rejected."""


class MalformedBackupError(BackupError):
    """Not JSON, or not a JSON object."""


class ForeignBackupError(BackupError):
    """JSON object that isn't one of our backups."""


class UnsupportedBackupVersionError(BackupError):
    """Our backup, but a schema version this build can't read."""


class BackupDocument(WireModel):
    app: Literal["routineland"] = APP_TAG
    schema_version: Literal[1] = SCHEMA_VERSION
    exported_at: str
    state: StoredState
    ui_prefs: dict[Timeframe, UiPrefs] = Field(default_factory=dict)


def _now_utc_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def backup_filename(now: Optional[datetime] = None) -> str:
    """e.g. routineland-backup-2024-03-09.json"""
    now = now or datetime.now()
    return f"{APP_TAG}-backup-{now:%Y-%m-%d}.json"


def build_backup(repository: StateRepository) -> BackupDocument:
    """Snapshot the stored state and every saved timeframe's preferences."""
    state = repository.load_state() or StoredState()

    ui_prefs = {}
    for timeframe in TIMEFRAMES:
        prefs = repository.load_prefs(timeframe)
        if prefs is not None:
            ui_prefs[timeframe] = prefs

    logger.info(f"Built backup with {len(state.goals)} goals, {len(ui_prefs)} prefs")
    return BackupDocument(exported_at=_now_utc_iso(), state=state, ui_prefs=ui_prefs)


def dump_backup(document: BackupDocument) -> str:
    return json.dumps(document.to_wire(), ensure_ascii=False, indent=2)


def parse_backup(text: str) -> BackupDocument:
    """
    Parse and validate a backup document.

    Args:
        text: Backup file contents

    Returns:
        BackupDocument with state sanitized and prefs coerced

    Raises:
        MalformedBackupError: If the text isn't a JSON object
        ForeignBackupError: If the app tag doesn't match
        UnsupportedBackupVersionError: If schemaVersion isn't exactly 1
    """
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedBackupError(f"Bad JSON: {e}") from e

    if not isinstance(raw, dict):
        raise MalformedBackupError("Bad JSON: expected an object")

    if raw.get("app") != APP_TAG:
        raise ForeignBackupError(f"Not a {APP_TAG} backup")

    version = raw.get("schemaVersion")
    if isinstance(version, bool) or version != SCHEMA_VERSION:
        raise UnsupportedBackupVersionError(f"Unsupported backup version: {version!r}")

    # Missing or broken state falls back to an empty one
    state, changed = sanitize_state(raw.get("state"))
    if changed:
        logger.info("Backup state needed cleanup during import")

    ui_prefs = {}
    raw_prefs = raw.get("uiPrefs")
    if isinstance(raw_prefs, dict):
        for timeframe in TIMEFRAMES:
            prefs = sanitize_prefs(raw_prefs.get(timeframe.value))
            if prefs is not None:
                ui_prefs[timeframe] = prefs

    exported_at = raw.get("exportedAt")
    if not isinstance(exported_at, str):
        exported_at = _now_utc_iso()

    return BackupDocument(exported_at=exported_at, state=state, ui_prefs=ui_prefs)


def restore_backup(repository: StateRepository, document: BackupDocument) -> None:
    """
    Overwrite stored state and any preferences present in the backup.

    Destructive; callers confirm with the user first.
    """
    repository.save_state(document.state)

    for timeframe in TIMEFRAMES:
        prefs = document.ui_prefs.get(timeframe)
        if prefs is not None:
            repository.save_prefs(timeframe, prefs)

    logger.info(
        f"Restored backup from {document.exported_at} "
        f"({len(document.state.goals)} goals)"
    )
