from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from equipment_portal.config import Settings, get_settings
from equipment_portal.security import require_login

router = APIRouter(tags=["Pages"])


@router.get("/login.html")
async def serve_login(settings: Settings = Depends(get_settings)):
    return FileResponse(settings.frontend_dir / "login.html")


@router.get("/", dependencies=[Depends(require_login)])
async def serve_index(settings: Settings = Depends(get_settings)):
    return FileResponse(settings.frontend_dir / "index.html")


@router.get("/health")
async def health():
    return {"status": "ok"}
