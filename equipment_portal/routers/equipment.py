import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import TypeAdapter, ValidationError

from equipment_portal import schemas
from equipment_portal.errors import MalformedInput, RemoteUnavailable
from equipment_portal.security import require_login
from equipment_portal.services import sheet_codec, xlsx_io
from equipment_portal.services.file_locator import FileLocator, get_file_locator
from equipment_portal.services.graph_drive import join_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Equipment"], dependencies=[Depends(require_login)])

_records_adapter = TypeAdapter(List[schemas.EquipmentRecord])
_header_adapter = TypeAdapter(Optional[schemas.InboundHeaderBlock])


def _parse_records(raw) -> List[schemas.EquipmentRecord]:
    if not isinstance(raw, list):
        raise MalformedInput("Missing or invalid folderName or rows", "records must be a list")
    try:
        return _records_adapter.validate_python(raw)
    except ValidationError as exc:
        raise MalformedInput("Missing or invalid folderName or rows", exc) from exc


def _parse_header_block(raw) -> Optional[schemas.HeaderBlock]:
    try:
        return _header_adapter.validate_python(raw)
    except ValidationError as exc:
        raise MalformedInput("Invalid headerBlock", exc) from exc


@router.get("/excel-data", response_model=schemas.EquipmentDataResponse)
def read_equipment_data(
    folder_name: Optional[str] = Query(None, alias="folderName"),
    locator: FileLocator = Depends(get_file_locator),
):
    """Reads the newest equipment workbook of a folder."""
    if not folder_name or not folder_name.strip():
        raise MalformedInput("Missing folderName")

    resolved = locator.resolve(folder_name)
    content = locator.drive.get_content(resolved.read_locator)
    decoded = sheet_codec.decode(xlsx_io.read_rows(content))
    logger.info(
        "Read %d records from %s (%s)",
        len(decoded.records),
        resolved.file_name,
        resolved.read_locator.describe(),
    )
    return schemas.EquipmentDataResponse(
        header_block=decoded.header_block,
        records=decoded.records,
        file_name=resolved.file_name,
    )


@router.post("/save-excel", response_model=schemas.SaveEquipmentResponse)
def save_equipment_data(
    payload: schemas.SaveEquipmentRequest,
    locator: FileLocator = Depends(get_file_locator),
):
    """
    Writes the records as a new timestamped backup workbook next to the original.
    The file returned by /excel-data is never overwritten.
    """
    if not payload.folder_name or not payload.folder_name.strip():
        raise MalformedInput("Missing or invalid folderName or rows", "folderName is required")
    records = _parse_records(payload.records)
    header_block = _parse_header_block(payload.header_block)

    content = xlsx_io.write_rows(sheet_codec.encode(header_block, records))
    backup_name = locator.next_backup_name(payload.folder_name, datetime.now())
    try:
        locator.drive.put_content(join_path(locator.folder_path(payload.folder_name), backup_name), content)
    except RemoteUnavailable as exc:
        exc.original_preserved = True
        raise

    logger.info("Saved %d records to backup %s", len(records), backup_name)
    return schemas.SaveEquipmentResponse(
        message="Backup file saved successfully",
        file_name=backup_name,
    )
