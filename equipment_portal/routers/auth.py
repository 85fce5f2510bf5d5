import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from equipment_portal import schemas
from equipment_portal.errors import MalformedInput
from equipment_portal.security import SESSION_COOKIE, SessionGate, get_session_gate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_credentials(request: Request) -> schemas.LoginRequest:
    """Accepts the login pair as a JSON body or as a posted form."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        data = dict(await request.form())
    else:
        try:
            data = await request.json()
        except ValueError as exc:
            raise MalformedInput("Invalid login payload", exc) from exc
    try:
        return schemas.LoginRequest.model_validate(data)
    except ValidationError as exc:
        raise MalformedInput("Invalid login payload", exc) from exc


@router.post("/api/login", response_model=schemas.LoginResponse)
async def login(
    request: Request,
    return_to: str = Query("/", alias="returnTo"),
    gate: SessionGate = Depends(get_session_gate),
):
    payload = await _read_credentials(request)
    if not gate.check_credentials(payload.username, payload.password):
        logger.info("Rejected login for '%s'", payload.username)
        return JSONResponse(status_code=401, content={"success": False, "message": "Invalid credentials"})

    # only local redirects
    if not return_to.startswith("/") or return_to.startswith("//"):
        return_to = "/"

    body = schemas.LoginResponse(success=True, return_to=return_to).model_dump(by_alias=True)
    response = JSONResponse(content=body)
    response.set_cookie(
        SESSION_COOKIE,
        gate.issue_token(payload.username),
        max_age=gate.settings.session_max_age_minutes * 60,
        httponly=True,
        secure=gate.settings.session_cookie_secure,
        samesite="lax",
    )
    return response


@router.get("/logout")
async def logout():
    response = RedirectResponse(url="/login.html", status_code=302)
    response.delete_cookie(SESSION_COOKIE)
    return response
