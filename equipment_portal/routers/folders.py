from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from equipment_portal.security import require_login
from equipment_portal.services.file_locator import FileLocator, get_file_locator
from equipment_portal.services.graph_drive import folder_names, join_path

router = APIRouter(prefix="/api", tags=["Folders"], dependencies=[Depends(require_login)])


@router.get("/list-folders", response_model=List[str])
def list_folders(
    path: Optional[str] = Query(None, description="Folder below the configured root; defaults to the root"),
    locator: FileLocator = Depends(get_file_locator),
):
    """Names of the sub-folders of a folder."""
    folder_path = join_path(locator.settings.onedrive_folder_path, path)
    return folder_names(locator.drive.list_children(folder_path))
