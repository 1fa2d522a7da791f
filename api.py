"""
api.py
JSON/multipart HTTP API for the gym dashboard (owner-only).
Run: uvicorn api:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import APIRouter, Body, Depends, FastAPI, File, Form, Request, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

import auth
import clients
import listing
import photos
from config import settings
from errors import GymError, OpResult, Unauthorized
from logging_config import setup_logging
from models import PhotoUpload

logger = logging.getLogger(__name__)

SESSION_COOKIE = "gym_session"

router = APIRouter()


class LoginRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    oldPassword: str
    newPassword: str


def current_user(request: Request) -> str | None:
    """Username of the logged-in owner, or None."""
    username = auth.read_session_token(request.cookies.get(SESSION_COOKIE))
    return username if auth.is_authorized(username) else None


def _respond(result: OpResult, status_code: int = status.HTTP_200_OK, render: Callable | None = None) -> JSONResponse:
    if not result.ok:
        return JSONResponse(status_code=result.error.status_code, content=result.to_dict())
    if render is not None:
        body = render(result.value)
    else:
        body = result.value.to_dict() if result.value is not None else {"success": True}
    if result.warnings:
        body["warnings"] = result.warnings
    return JSONResponse(status_code=status_code, content=body)


def _error(exc: GymError) -> JSONResponse:
    return _respond(OpResult(ok=False, error=exc))


def _photo_from_upload(upload: UploadFile | None) -> PhotoUpload | None:
    if upload is None or not upload.filename:
        return None
    # one byte past the limit is enough for validation to reject it
    data = upload.file.read(settings.max_photo_bytes + 1)
    return PhotoUpload(filename=upload.filename, content_type=upload.content_type or "", data=data)


# ---------- Session ----------

@router.post("/login")
def login(body: LoginRequest, response: Response):
    username = body.username.strip()
    if not auth.login(username, body.password):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"success": False})
    response.set_cookie(
        SESSION_COOKIE,
        auth.issue_session_token(username),
        max_age=settings.session_max_age,
        httponly=True,
        samesite="lax",
    )
    return {"success": True}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return {"success": True}


@router.post("/change-password")
def change_password(body: ChangePasswordRequest, user: str | None = Depends(current_user)):
    result = auth.change_password(user, body.oldPassword, body.newPassword, authorized=user is not None)
    return _respond(result)


# ---------- Clients ----------

@router.post("/clients")
def create_client(
    name: str | None = Form(None),
    phone: str | None = Form(None),
    joinDate: str | None = Form(None),
    expiryDate: str | None = Form(None),
    feeStatus: str | None = Form(None),
    duration: str | None = Form(None),
    photo: UploadFile | None = File(None),
    user: str | None = Depends(current_user),
):
    fields = {
        "name": name,
        "phone": phone,
        "joinDate": joinDate,
        "expiryDate": expiryDate,
        "feeStatus": feeStatus,
        "duration": duration,
    }
    result = clients.create_client(fields, _photo_from_upload(photo), authorized=user is not None)
    return _respond(result, status_code=status.HTTP_201_CREATED)


@router.get("/clients")
def list_clients(
    search: str = "",
    feeStatus: str = "all",
    page: int = 1,
    limit: int = 10,
    sortBy: str = "joinDate",
    order: str = "desc",
    user: str | None = Depends(current_user),
):
    result = listing.list_clients(
        authorized=user is not None,
        search=search,
        status=feeStatus.lower(),
        page=page,
        page_size=limit,
        sort_by=sortBy,
        order=order.lower(),
    )
    return _respond(result)


@router.get("/clients/{client_id}")
def get_client(client_id: int, user: str | None = Depends(current_user)):
    return _respond(clients.get_client(client_id, authorized=user is not None))


@router.put("/clients/{client_id}")
def update_client(
    client_id: int,
    name: str | None = Form(None),
    phone: str | None = Form(None),
    joinDate: str | None = Form(None),
    expiryDate: str | None = Form(None),
    lastVisit: str | None = Form(None),
    feeStatus: str | None = Form(None),
    photo: UploadFile | None = File(None),
    user: str | None = Depends(current_user),
):
    fields = {
        "name": name,
        "phone": phone,
        "joinDate": joinDate,
        "expiryDate": expiryDate,
        "lastVisit": lastVisit,
        "feeStatus": feeStatus,
    }
    result = clients.update_client(client_id, fields, _photo_from_upload(photo), authorized=user is not None)
    return _respond(result)


@router.delete("/clients/{client_id}")
def delete_client(client_id: int, user: str | None = Depends(current_user)):
    result = clients.delete_client(client_id, authorized=user is not None)
    return _respond(result, render=lambda client: {"message": "Client deleted", "client": client.to_dict()})


@router.put("/clients/{client_id}/toggle-fee")
def toggle_fee(client_id: int, user: str | None = Depends(current_user)):
    return _respond(clients.toggle_fee(client_id, authorized=user is not None))


@router.put("/clients/{client_id}/renew")
def renew(client_id: int, body: dict = Body(...), user: str | None = Depends(current_user)):
    result = clients.renew(client_id, body.get("months"), authorized=user is not None)
    return _respond(result)


@router.put("/clients/{client_id}/visit")
def record_visit(client_id: int, user: str | None = Depends(current_user)):
    return _respond(clients.record_visit(client_id, authorized=user is not None))


@router.get("/stats")
def stats(expiringDays: int | None = None, user: str | None = Depends(current_user)):
    return _respond(listing.stats(authorized=user is not None, expiring_days=expiringDays))


@router.get("/uploads/{ref}")
def get_photo(ref: str, user: str | None = Depends(current_user)):
    if user is None:
        return _error(Unauthorized("Login required."))
    try:
        return FileResponse(photos.photo_path(ref))
    except GymError as exc:
        return _error(exc)


# ---------- App ----------

async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"kind": "ValidationError", "message": details or "Invalid request."},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    auth.init_auth(settings.owner_credentials())
    logger.info("Gym API ready (db=%s)", settings.db_path)
    yield


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_file)
    app = FastAPI(title="Gym Management API", lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api:app", host="0.0.0.0", port=5000, reload=False)
