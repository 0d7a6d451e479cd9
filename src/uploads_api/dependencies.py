"""FastAPI dependencies shared by the routers."""
import functools
import logging
from typing import Callable, Optional

from fastapi import Depends, Query, Request

from database.image_store import ImageStore
from database.mongo_adapter import get_mongo_adapter
from uploads_api.adapters.pdf_converter import PdfConverterClient, get_pdf_converter
from uploads_api.auth.firebase import AuthTokenError, get_firebase_app, verify_id_token
from uploads_api.auth.models import AuthUser
from uploads_api.config.settings import Settings
from uploads_api.errors import MissingOwnerError, OwnershipMismatchError, get_request_id

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "

TokenVerifier = Callable[[str], AuthUser]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_image_store(settings: Settings = Depends(get_app_settings)) -> ImageStore:
    """Image store over the process-wide Mongo adapter; the connection opens lazily."""
    return ImageStore(get_mongo_adapter(settings))


def get_converter_factory(settings: Settings = Depends(get_app_settings)) -> Callable[[], PdfConverterClient]:
    """Deferred converter construction, so a missing URL only fails PDF uploads."""
    return functools.partial(get_pdf_converter, settings)


def get_token_verifier(settings: Settings = Depends(get_app_settings)) -> TokenVerifier:
    def verify(id_token: str) -> AuthUser:
        app = get_firebase_app(settings.firebase_project_id)
        return verify_id_token(id_token, app=app)

    return verify


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    if header.lower().startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None
    return None


def get_owner_id(
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId", description="Identifier of the requesting user"),
    settings: Settings = Depends(get_app_settings),
    verify: TokenVerifier = Depends(get_token_verifier),
) -> str:
    """Resolve who is asking to modify a stored file.

    By default this is the ``userId`` query parameter as supplied. With
    ``verify_id_tokens`` enabled it is the uid of the Bearer ID token, and a
    ``userId`` that names someone else is refused.

    Raises:
        MissingOwnerError: no identity was supplied (401).
        OwnershipMismatchError: ``userId`` disagrees with the verified token (403).
    """
    req_id = get_request_id(request)
    if not settings.verify_id_tokens:
        if not user_id:
            logger.warning(f"(Req ID: {req_id}) Missing userId for {request.method} {request.url.path}")
            raise MissingOwnerError("Unauthorized: Missing user identification.")
        return user_id

    token = _bearer_token(request)
    if not token:
        logger.warning(f"(Req ID: {req_id}) Missing bearer token for {request.method} {request.url.path}")
        raise MissingOwnerError("Unauthorized: Missing user identification.")
    try:
        user = verify(token)
    except AuthTokenError as e:
        logger.warning(f"(Req ID: {req_id}) Rejected ID token: {e}")
        raise MissingOwnerError("Unauthorized: Invalid ID token.") from e

    if user_id and user_id != user.uid:
        logger.warning(f"(Req ID: {req_id}) userId {user_id} does not match token uid {user.uid}")
        raise OwnershipMismatchError("Unauthorized: You do not have permission to delete this file.")
    return user.uid
