from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List

from fastapi import Depends

from equipment_portal.config import Settings, get_settings
from equipment_portal.errors import MalformedInput
from equipment_portal.services.graph_drive import (
    GraphDriveClient,
    ReadLocator,
    RemoteFileDescriptor,
    get_drive_client,
    join_path,
)

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSION = ".xlsx"
EQUIPMENT_MARKER = "_equipment_data"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass(frozen=True)
class ResolvedFile:
    file_name: str
    read_locator: ReadLocator


def folder_segments(folder: str) -> List[str]:
    segments = [seg for seg in (folder or "").split("/") if seg.strip()]
    if not segments:
        raise MalformedInput("Missing folderName", "folder identifier is empty")
    return segments


def is_equipment_file(entry: RemoteFileDescriptor) -> bool:
    return (
        entry.is_file
        and entry.name.lower().endswith(SPREADSHEET_EXTENSION)
        and EQUIPMENT_MARKER in entry.name
    )


class FileLocator:
    """Maps a logical folder to its equipment workbook and names new backups."""

    def __init__(self, settings: Settings, drive: GraphDriveClient):
        self.settings = settings
        self.drive = drive

    def folder_path(self, folder: str) -> str:
        return join_path(self.settings.onedrive_folder_path, *folder_segments(folder))

    def default_name(self, folder: str) -> str:
        return f"{folder_segments(folder)[-1]}{EQUIPMENT_MARKER}{SPREADSHEET_EXTENSION}"

    def resolve(self, folder: str) -> ResolvedFile:
        folder_path = self.folder_path(folder)
        candidates = [entry for entry in self.drive.list_children(folder_path) if is_equipment_file(entry)]

        if candidates:
            latest = max(candidates, key=lambda entry: entry.last_modified)
            logger.info("Resolved '%s' to %s (%d candidates)", folder, latest.name, len(candidates))
            return ResolvedFile(file_name=latest.name, read_locator=ReadLocator(item_id=latest.id))

        name = self.default_name(folder)
        logger.info("No equipment file in '%s', falling back to %s", folder, name)
        return ResolvedFile(file_name=name, read_locator=ReadLocator(path=join_path(folder_path, name)))

    def next_backup_name(self, folder: str, now: datetime) -> str:
        base = folder_segments(folder)[-1].replace(" ", "_")
        return f"{base}{EQUIPMENT_MARKER}_{now.strftime(BACKUP_TIMESTAMP_FORMAT)}{SPREADSHEET_EXTENSION}"


def get_file_locator(
    settings: Settings = Depends(get_settings),
    drive: GraphDriveClient = Depends(get_drive_client),
) -> FileLocator:
    return FileLocator(settings, drive)
