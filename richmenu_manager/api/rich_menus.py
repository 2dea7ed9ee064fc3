"""Rich menu REST API routes.

Every route delegates to ``RichMenuClient``. Client errors are turned into
JSON responses by the exception handler registered in ``main.py``.
"""
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel
from typing import Any, Dict, List

from richmenu_manager.exceptions import NotFoundError, RichMenuValidationError
from richmenu_manager.models.base import LineModel
from richmenu_manager.models.rich_menu import RichMenuAlias, RichMenuRequest
from richmenu_manager.services.rich_menu_client import RichMenuClient, get_rich_menu_client
from richmenu_manager.services.template_service import load_templates


# Create router
router = APIRouter(prefix="/api", tags=["rich-menus"])


class TokenRequest(BaseModel):
    """Body of POST /api/token."""

    token: str


class BulkLinkRequest(LineModel):
    """Body of POST /api/users/bulk/link."""

    rich_menu_id: str
    user_ids: List[str]


class BulkUnlinkRequest(LineModel):
    """Body of POST /api/users/bulk/unlink."""

    user_ids: List[str]


class AliasUpdateRequest(LineModel):
    """Body of POST /api/aliases/{alias_id}."""

    rich_menu_id: str


def image_media_type(data: bytes) -> str:
    """Guess the MIME type of downloaded image bytes."""
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    return "image/png"


# ----------------------------------------------------------------------
# Token
# ----------------------------------------------------------------------

@router.post("/token")
async def set_token(
    body: TokenRequest,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Set the channel access token used by all later calls."""
    if len(body.token) < 10:
        raise RichMenuValidationError("Invalid channel access token format")
    client.set_access_token(body.token)
    return {"success": True, "message": "Token set"}


@router.get("/token/status")
async def token_status(client: RichMenuClient = Depends(get_rich_menu_client)) -> Dict[str, Any]:
    """Report whether a token is configured."""
    return {
        "isSet": client.has_access_token(),
        "preview": client.token_preview()
    }


# ----------------------------------------------------------------------
# Rich menu CRUD
# ----------------------------------------------------------------------

@router.get("/richmenus")
async def list_rich_menus(client: RichMenuClient = Depends(get_rich_menu_client)) -> Dict[str, Any]:
    """List all rich menus."""
    menus = await client.list_rich_menus()
    return {"success": True, "data": menus}


@router.post("/richmenus/validate")
async def validate_rich_menu(
    menu: RichMenuRequest,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Validate a rich menu object with LINE without creating it."""
    await client.validate_rich_menu(menu)
    return {"success": True, "message": "Validation passed"}


@router.get("/richmenus/{rich_menu_id}")
async def get_rich_menu(
    rich_menu_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Get a single rich menu."""
    menu = await client.get_rich_menu(rich_menu_id)
    return {"success": True, "data": menu}


@router.post("/richmenus", status_code=201)
async def create_rich_menu(
    menu: RichMenuRequest,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Create a rich menu."""
    result = await client.create_rich_menu(menu)
    return {"success": True, "data": result}


@router.delete("/richmenus/{rich_menu_id}")
async def delete_rich_menu(
    rich_menu_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Delete a rich menu."""
    await client.delete_rich_menu(rich_menu_id)
    return {"success": True, "message": "Deleted"}


# ----------------------------------------------------------------------
# Images
# ----------------------------------------------------------------------

@router.post("/richmenus/{rich_menu_id}/image")
async def upload_rich_menu_image(
    rich_menu_id: str,
    image: UploadFile = File(...),
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Upload the image of a rich menu (multipart field ``image``)."""
    if image.content_type not in client.config.allowed_image_types:
        raise RichMenuValidationError(
            "Only PNG or JPEG images are supported",
            details={"content_type": image.content_type}
        )
    data = await image.read()
    await client.upload_rich_menu_image(rich_menu_id, data, image.content_type)
    return {"success": True, "message": "Image uploaded"}


@router.get("/richmenus/{rich_menu_id}/image")
async def download_rich_menu_image(
    rich_menu_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Response:
    """Download the image of a rich menu."""
    data = await client.download_rich_menu_image(rich_menu_id)
    return Response(content=data, media_type=image_media_type(data))


# ----------------------------------------------------------------------
# Default rich menu
# ----------------------------------------------------------------------

@router.get("/default-richmenu")
async def get_default_rich_menu(client: RichMenuClient = Depends(get_rich_menu_client)) -> Dict[str, Any]:
    """Get the default rich menu; ``data`` is null when none is set."""
    try:
        result = await client.get_default_rich_menu()
    except NotFoundError:
        return {"success": True, "data": None}
    return {"success": True, "data": result}


@router.post("/default-richmenu/{rich_menu_id}")
async def set_default_rich_menu(
    rich_menu_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Set the default rich menu."""
    await client.set_default_rich_menu(rich_menu_id)
    return {"success": True, "message": "Default rich menu set"}


@router.delete("/default-richmenu")
async def cancel_default_rich_menu(client: RichMenuClient = Depends(get_rich_menu_client)) -> Dict[str, Any]:
    """Clear the default rich menu."""
    await client.cancel_default_rich_menu()
    return {"success": True, "message": "Default rich menu cleared"}


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------

@router.post("/users/bulk/link")
async def bulk_link_rich_menu(
    body: BulkLinkRequest,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Link a rich menu to up to 500 users."""
    await client.bulk_link_rich_menu(body.rich_menu_id, body.user_ids)
    return {"success": True, "message": f"Linked {len(body.user_ids)} users"}


@router.post("/users/bulk/unlink")
async def bulk_unlink_rich_menu(
    body: BulkUnlinkRequest,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Unlink rich menus from up to 500 users."""
    await client.bulk_unlink_rich_menu(body.user_ids)
    return {"success": True, "message": f"Unlinked {len(body.user_ids)} users"}


@router.post("/users/{user_id}/richmenu/{rich_menu_id}")
async def link_rich_menu_to_user(
    user_id: str,
    rich_menu_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Link a rich menu to a user."""
    await client.link_rich_menu_to_user(user_id, rich_menu_id)
    return {"success": True, "message": "Linked"}


@router.delete("/users/{user_id}/richmenu")
async def unlink_rich_menu_from_user(
    user_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Unlink the rich menu of a user."""
    await client.unlink_rich_menu_from_user(user_id)
    return {"success": True, "message": "Unlinked"}


@router.get("/users/{user_id}/richmenu")
async def get_user_rich_menu(
    user_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Get the rich menu of a user; ``data`` is null when none is linked."""
    try:
        result = await client.get_user_rich_menu(user_id)
    except NotFoundError:
        return {"success": True, "data": None}
    return {"success": True, "data": result}


# ----------------------------------------------------------------------
# Aliases
# ----------------------------------------------------------------------

@router.get("/aliases")
async def list_rich_menu_aliases(client: RichMenuClient = Depends(get_rich_menu_client)) -> Dict[str, Any]:
    """List all aliases."""
    aliases = await client.list_rich_menu_aliases()
    return {"success": True, "data": aliases}


@router.post("/aliases", status_code=201)
async def create_rich_menu_alias(
    alias: RichMenuAlias,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Create an alias."""
    await client.create_rich_menu_alias(alias.rich_menu_alias_id, alias.rich_menu_id)
    return {"success": True, "message": "Alias created"}


@router.get("/aliases/{alias_id}")
async def get_rich_menu_alias(
    alias_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Get an alias."""
    alias = await client.get_rich_menu_alias(alias_id)
    return {"success": True, "data": alias}


@router.post("/aliases/{alias_id}")
async def update_rich_menu_alias(
    alias_id: str,
    body: AliasUpdateRequest,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Point an alias at another rich menu."""
    await client.update_rich_menu_alias(alias_id, body.rich_menu_id)
    return {"success": True, "message": "Alias updated"}


@router.delete("/aliases/{alias_id}")
async def delete_rich_menu_alias(
    alias_id: str,
    client: RichMenuClient = Depends(get_rich_menu_client)
) -> Dict[str, Any]:
    """Delete an alias."""
    await client.delete_rich_menu_alias(alias_id)
    return {"success": True, "message": "Alias deleted"}


# ----------------------------------------------------------------------
# Templates
# ----------------------------------------------------------------------

@router.get("/templates")
async def list_templates() -> Dict[str, Any]:
    """List the bundled rich menu templates."""
    return {"success": True, "data": load_templates()}
