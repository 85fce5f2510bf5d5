import logging
from urllib.parse import quote

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from equipment_portal.config import get_settings
from equipment_portal.errors import (
    DecodeAnomaly,
    LoginRequired,
    MalformedInput,
    RemoteUnavailable,
)
from equipment_portal.routers import auth, equipment, folders, pages

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Equipment Portal")
app.mount("/public", StaticFiles(directory=settings.frontend_dir / "public", check_dir=False), name="public")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(pages.router)
app.include_router(folders.router)
app.include_router(equipment.router)


@app.exception_handler(LoginRequired)
async def handle_login_required(request: Request, exc: LoginRequired):
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=401, content={"error": "Unauthorized, please login."})
    original = request.url.path
    if request.url.query:
        original = f"{original}?{request.url.query}"
    return RedirectResponse(url=f"/login.html?returnTo={quote(original, safe='')}", status_code=302)


@app.exception_handler(RemoteUnavailable)
async def handle_remote_unavailable(request: Request, exc: RemoteUnavailable):
    logger.error("Remote store call failed on %s: %s (%s)", request.url.path, exc.message, exc.details)
    content = {"error": exc.message, "details": exc.details}
    if exc.original_preserved:
        content["error"] = "Failed to save backup Excel file; the original file was not modified"
        content["originalFilePreserved"] = True
    return JSONResponse(status_code=502, content=content)


@app.exception_handler(MalformedInput)
async def handle_malformed_input(request: Request, exc: MalformedInput):
    logger.warning("Rejected request to %s: %s (%s)", request.url.path, exc.message, exc.details)
    return JSONResponse(status_code=400, content={"error": exc.message, "details": exc.details})


@app.exception_handler(DecodeAnomaly)
async def handle_decode_anomaly(request: Request, exc: DecodeAnomaly):
    logger.warning("Could not decode workbook for %s: %s (%s)", request.url.path, exc.message, exc.details)
    return JSONResponse(status_code=422, content={"error": exc.message, "details": exc.details})


if __name__ == "__main__":
    uvicorn.run("equipment_portal.main:app", host="0.0.0.0", port=settings.port)
