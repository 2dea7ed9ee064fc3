"""LINE rich menu API client.

All rich menu operations go through ``RichMenuClient``. It owns the
channel access token, retries requests LINE rejects with 429, and turns
every response into either a plain value or a ``RichMenuApiError``.

Image upload and download use the data API host (api-data.line.me);
everything else uses the regular API host.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
import asyncio
import json
import logging
import os
from pathlib import Path

import httpx

from richmenu_manager.config import Settings, settings as default_settings, is_usable_token
from richmenu_manager.exceptions import (
    ConflictError,
    BadRequestError,
    RichMenuApiError,
    RichMenuValidationError,
    TransportError,
    UnauthenticatedError,
    error_from_response,
)
from richmenu_manager.models.rich_menu import RichMenuRequest, check_allowed_size


# Configure logging
logger = logging.getLogger(__name__)

MAX_BULK_USERS = 500

JPEG_EXTENSIONS = (".jpg", ".jpeg")

ImageInput = Union[bytes, bytearray, str, os.PathLike]
RichMenuInput = Union[RichMenuRequest, Dict[str, Any]]


def success_marker() -> Dict[str, Any]:
    """Value returned for successful responses without a body."""
    return {"success": True}


class RichMenuClient:
    """Async client for the LINE rich menu endpoints."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        """
        Initialize the client.

        Args:
            config: Settings to read endpoints, retry policy and limits from
            access_token: Initial channel access token (defaults to the configured one)
            transport: httpx transport, mainly for tests
            sleep: Coroutine used to wait between retries (defaults to asyncio.sleep)
        """
        self.config = config or default_settings
        self._access_token = (
            access_token if access_token is not None else self.config.line_channel_access_token
        )
        self._http = httpx.AsyncClient(timeout=self.config.line_api_timeout, transport=transport)
        self._sleep = sleep or asyncio.sleep

    async def __aenter__(self) -> "RichMenuClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Credential
    # ------------------------------------------------------------------

    @property
    def access_token(self) -> str:
        return self._access_token

    def set_access_token(self, token: str) -> None:
        """
        Replace the channel access token used for subsequent requests.

        Args:
            token: New LINE channel access token
        """
        self._access_token = token
        logger.info("Channel access token updated")

    def has_access_token(self) -> bool:
        return is_usable_token(self._access_token)

    def token_preview(self) -> Optional[str]:
        """First characters of the token for display, or None if unset."""
        if not self.has_access_token():
            return None
        return f"{self._access_token[:20]}..."

    def _ensure_token(self) -> str:
        if not self.has_access_token():
            raise UnauthenticatedError(
                "Channel access token is not set. Set LINE_CHANNEL_ACCESS_TOKEN "
                "or call set_access_token() first."
            )
        return self._access_token

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Send a request, retrying while LINE answers 429.

        Connection failures and timeouts are raised as ``TransportError``.

        The wait before retry ``n`` (starting at 0) is
        ``line_api_retry_delay * 2 ** n``. Once ``line_api_max_retries``
        retries are used up the last 429 response is returned.

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Passed to ``httpx.AsyncClient.request``

        Returns:
            The final response
        """
        attempt = 0
        while True:
            logger.debug(f"{method} {url} (attempt {attempt + 1})")
            try:
                response = await self._http.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                logger.error(f"LINE API request failed: {method} {url}: {e!r}")
                raise TransportError(
                    f"Could not reach the LINE API: {e}",
                    details={"message": str(e)}
                ) from e

            if response.status_code != 429 or attempt >= self.config.line_api_max_retries:
                return response

            # LINE does not send Retry-After, so back off exponentially
            delay = self.config.line_api_retry_delay * (2 ** attempt)
            logger.warning(
                f"LINE API rate limited on {method} {url}, "
                f"retrying in {delay:g}s (retry {attempt + 1}/{self.config.line_api_max_retries})"
            )
            await self._sleep(delay)
            attempt += 1

    async def _request(
        self,
        method: str,
        endpoint: str,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Authenticate, send with retry and raise for non-2xx responses."""
        token = self._ensure_token()
        url = f"{base_url or self.config.line_api_base_url}{endpoint}"
        request_headers = {"Authorization": f"Bearer {token}"}
        if headers:
            request_headers.update(headers)

        response = await self._send_with_retry(method, url, headers=request_headers, **kwargs)
        if not response.is_success:
            raise self._build_error(response)
        return response

    @staticmethod
    def _build_error(response: httpx.Response) -> RichMenuApiError:
        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text or "Unable to read the error response"}
        return error_from_response(response.status_code, body)

    @staticmethod
    def _normalize(response: httpx.Response) -> Any:
        """
        Turn a successful response into the value handed to callers.

        204 and empty bodies (including a literal ``{}``) become the success
        marker, as does a JSON ``null``. Other JSON bodies are returned
        parsed. Anything unparseable is wrapped as
        ``{"success": True, "raw": text}``.
        """
        if response.status_code == 204:
            return success_marker()

        text = response.text
        if text.strip() in ("", "{}"):
            return success_marker()

        try:
            parsed = json.loads(text)
        except ValueError:
            content_type = response.headers.get("content-type", "")
            logger.debug(f"Non-JSON success body (content-type: {content_type!r})")
            return {"success": True, "raw": text}
        if parsed is None:
            return success_marker()
        return parsed

    async def _call(self, method: str, endpoint: str, **kwargs) -> Any:
        response = await self._request(method, endpoint, **kwargs)
        return self._normalize(response)

    def _menu_payload(self, rich_menu: RichMenuInput) -> Dict[str, Any]:
        if isinstance(rich_menu, RichMenuRequest):
            check_allowed_size(rich_menu, self.config.allowed_image_sizes)
            return rich_menu.to_payload()
        if isinstance(rich_menu, dict):
            return rich_menu
        raise RichMenuValidationError("rich_menu must be a RichMenuRequest or a dict")

    # ------------------------------------------------------------------
    # Rich menu CRUD
    # ------------------------------------------------------------------

    async def list_rich_menus(self) -> List[Dict[str, Any]]:
        """
        List all rich menus of the channel.

        Returns:
            Rich menu objects, in the order LINE returns them
        """
        result = await self._call("GET", "/v2/bot/richmenu/list")
        if not isinstance(result, dict):
            return []
        return result.get("richmenus") or []

    async def get_rich_menu(self, rich_menu_id: str) -> Dict[str, Any]:
        """
        Get a single rich menu.

        Args:
            rich_menu_id: Rich menu ID

        Returns:
            Rich menu object
        """
        return await self._call("GET", f"/v2/bot/richmenu/{rich_menu_id}")

    async def create_rich_menu(self, rich_menu: RichMenuInput) -> Dict[str, Any]:
        """
        Create a rich menu.

        Args:
            rich_menu: Rich menu object (size, selected, name, chatBarText, areas)

        Returns:
            Response containing the new ``richMenuId``
        """
        result = await self._call("POST", "/v2/bot/richmenu", json=self._menu_payload(rich_menu))
        logger.info(f"Rich Menu created with ID: {result.get('richMenuId')}")
        return result

    async def validate_rich_menu(self, rich_menu: RichMenuInput) -> Dict[str, Any]:
        """
        Ask LINE to validate a rich menu object without creating it.

        Args:
            rich_menu: Rich menu object

        Returns:
            Success marker when the object is valid
        """
        return await self._call("POST", "/v2/bot/richmenu/validate", json=self._menu_payload(rich_menu))

    async def delete_rich_menu(self, rich_menu_id: str) -> Dict[str, Any]:
        """
        Delete a rich menu. Deletion cannot be undone.

        Args:
            rich_menu_id: Rich menu ID
        """
        result = await self._call("DELETE", f"/v2/bot/richmenu/{rich_menu_id}")
        logger.info(f"Rich Menu {rich_menu_id} deleted")
        return result

    async def delete_all_rich_menus(self) -> List[str]:
        """
        Delete every rich menu of the channel.

        Returns:
            IDs of the deleted rich menus
        """
        deleted = []
        for rich_menu in await self.list_rich_menus():
            rich_menu_id = rich_menu.get("richMenuId")
            if not rich_menu_id:
                logger.warning(f"Skipping rich menu without an ID: {rich_menu}")
                continue
            await self.delete_rich_menu(rich_menu_id)
            deleted.append(rich_menu_id)
        logger.info(f"Deleted {len(deleted)} rich menus")
        return deleted

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _read_image(self, image: ImageInput, content_type: str) -> tuple:
        if isinstance(image, (bytes, bytearray)):
            return bytes(image), content_type

        if isinstance(image, (str, os.PathLike)):
            path = Path(image).resolve()
            if not path.is_file():
                raise RichMenuValidationError(
                    f"Image file not found: {path}",
                    details={"path": str(path)}
                )
            if path.suffix.lower() in JPEG_EXTENSIONS:
                content_type = "image/jpeg"
            else:
                content_type = "image/png"
            return path.read_bytes(), content_type

        raise RichMenuValidationError("image must be a file path or bytes")

    async def upload_rich_menu_image(
        self,
        rich_menu_id: str,
        image: ImageInput,
        content_type: str = "image/png"
    ) -> Dict[str, Any]:
        """
        Upload the background image of a rich menu.

        Args:
            rich_menu_id: Rich menu ID (the menu must already exist)
            image: Image bytes, or path to a PNG/JPEG file
            content_type: MIME type for byte input; detected from the extension for paths

        Returns:
            Success marker

        Raises:
            RichMenuValidationError: Missing file, unsupported type or image over the size limit
        """
        data, content_type = self._read_image(image, content_type)

        if content_type not in self.config.allowed_image_types:
            raise RichMenuValidationError(
                f"Unsupported image type {content_type}. Use PNG or JPEG.",
                details={"content_type": content_type}
            )

        if len(data) > self.config.max_image_bytes:
            raise RichMenuValidationError(
                f"Image is larger than the 1 MB limit ({len(data) / 1024 / 1024:.2f} MB)",
                details={"size": len(data), "max_size": self.config.max_image_bytes}
            )

        result = await self._call(
            "POST",
            f"/v2/bot/richmenu/{rich_menu_id}/content",
            base_url=self.config.line_data_api_base_url,
            headers={"Content-Type": content_type},
            content=data
        )
        logger.info(f"Rich Menu image uploaded for ID: {rich_menu_id} ({len(data)} bytes)")
        return result

    async def download_rich_menu_image(self, rich_menu_id: str) -> bytes:
        """
        Download the image attached to a rich menu.

        Args:
            rich_menu_id: Rich menu ID

        Returns:
            Raw image bytes, unmodified
        """
        response = await self._request(
            "GET",
            f"/v2/bot/richmenu/{rich_menu_id}/content",
            base_url=self.config.line_data_api_base_url
        )
        return response.content

    # ------------------------------------------------------------------
    # Default rich menu
    # ------------------------------------------------------------------

    async def set_default_rich_menu(self, rich_menu_id: str) -> Dict[str, Any]:
        """
        Show a rich menu to every user without a per-user menu.

        Args:
            rich_menu_id: Rich menu ID
        """
        result = await self._call("POST", f"/v2/bot/user/all/richmenu/{rich_menu_id}")
        logger.info(f"Rich Menu {rich_menu_id} set as default")
        return result

    async def get_default_rich_menu(self) -> Dict[str, Any]:
        """
        Get the default rich menu.

        Returns:
            ``{"richMenuId": ...}``; raises NotFoundError when none is set
        """
        return await self._call("GET", "/v2/bot/user/all/richmenu")

    async def cancel_default_rich_menu(self) -> Dict[str, Any]:
        """Clear the default rich menu."""
        result = await self._call("DELETE", "/v2/bot/user/all/richmenu")
        logger.info("Default Rich Menu cleared")
        return result

    # ------------------------------------------------------------------
    # Per-user rich menu
    # ------------------------------------------------------------------

    async def link_rich_menu_to_user(self, user_id: str, rich_menu_id: str) -> Dict[str, Any]:
        """
        Link a rich menu to a specific user.

        Args:
            user_id: LINE user ID
            rich_menu_id: Rich menu ID
        """
        result = await self._call("POST", f"/v2/bot/user/{user_id}/richmenu/{rich_menu_id}")
        logger.info(f"Rich Menu {rich_menu_id} linked to user {user_id}")
        return result

    async def unlink_rich_menu_from_user(self, user_id: str) -> Dict[str, Any]:
        """
        Remove the rich menu linked to a user.

        Args:
            user_id: LINE user ID
        """
        result = await self._call("DELETE", f"/v2/bot/user/{user_id}/richmenu")
        logger.info(f"Rich Menu unlinked from user {user_id}")
        return result

    async def get_user_rich_menu(self, user_id: str) -> Dict[str, Any]:
        """
        Get the rich menu linked to a user.

        Args:
            user_id: LINE user ID

        Returns:
            ``{"richMenuId": ...}``
        """
        return await self._call("GET", f"/v2/bot/user/{user_id}/richmenu")

    @staticmethod
    def _check_bulk_size(user_ids: List[str]) -> None:
        if len(user_ids) > MAX_BULK_USERS:
            raise RichMenuValidationError(
                f"Bulk operations accept at most {MAX_BULK_USERS} user IDs (got {len(user_ids)})",
                details={"count": len(user_ids), "max_count": MAX_BULK_USERS}
            )

    async def bulk_link_rich_menu(self, rich_menu_id: str, user_ids: List[str]) -> Dict[str, Any]:
        """
        Link a rich menu to many users at once.

        Args:
            rich_menu_id: Rich menu ID
            user_ids: Up to 500 LINE user IDs
        """
        user_ids = list(user_ids)
        self._check_bulk_size(user_ids)
        result = await self._call(
            "POST",
            "/v2/bot/richmenu/bulk/link",
            json={"richMenuId": rich_menu_id, "userIds": user_ids}
        )
        logger.info(f"Rich Menu {rich_menu_id} linked to {len(user_ids)} users")
        return result

    async def bulk_unlink_rich_menu(self, user_ids: List[str]) -> Dict[str, Any]:
        """
        Unlink rich menus from many users at once.

        Args:
            user_ids: Up to 500 LINE user IDs
        """
        user_ids = list(user_ids)
        self._check_bulk_size(user_ids)
        result = await self._call(
            "POST",
            "/v2/bot/richmenu/bulk/unlink",
            json={"userIds": user_ids}
        )
        logger.info(f"Rich Menu unlinked from {len(user_ids)} users")
        return result

    # ------------------------------------------------------------------
    # Aliases
    # ------------------------------------------------------------------

    async def create_rich_menu_alias(self, rich_menu_alias_id: str, rich_menu_id: str) -> Dict[str, Any]:
        """
        Create an alias for a rich menu.

        Aliases are the targets of ``richmenuswitch`` actions.

        Args:
            rich_menu_alias_id: Alias ID chosen by the caller
            rich_menu_id: Rich menu ID
        """
        result = await self._call(
            "POST",
            "/v2/bot/richmenu/alias",
            json={"richMenuAliasId": rich_menu_alias_id, "richMenuId": rich_menu_id}
        )
        logger.info(f"Rich Menu alias '{rich_menu_alias_id}' created for ID: {rich_menu_id}")
        return result

    async def update_rich_menu_alias(self, rich_menu_alias_id: str, rich_menu_id: str) -> Dict[str, Any]:
        """
        Point an existing alias at another rich menu.

        Args:
            rich_menu_alias_id: Alias ID
            rich_menu_id: New rich menu ID
        """
        result = await self._call(
            "POST",
            f"/v2/bot/richmenu/alias/{rich_menu_alias_id}",
            json={"richMenuId": rich_menu_id}
        )
        logger.info(f"Rich Menu alias '{rich_menu_alias_id}' now points to ID: {rich_menu_id}")
        return result

    async def create_or_update_rich_menu_alias(self, rich_menu_alias_id: str, rich_menu_id: str) -> Dict[str, Any]:
        """
        Create an alias, or re-point it if it already exists.

        LINE reports a duplicate alias either as 409 or as 400 with
        "conflict richmenu alias id" in the message.
        """
        try:
            return await self.create_rich_menu_alias(rich_menu_alias_id, rich_menu_id)
        except (ConflictError, BadRequestError) as e:
            if isinstance(e, BadRequestError) and "conflict" not in e.message.lower():
                raise
            logger.warning(f"Rich Menu alias '{rich_menu_alias_id}' already exists, updating it")
            return await self.update_rich_menu_alias(rich_menu_alias_id, rich_menu_id)

    async def get_rich_menu_alias(self, rich_menu_alias_id: str) -> Dict[str, Any]:
        """
        Get an alias.

        Returns:
            ``{"richMenuAliasId": ..., "richMenuId": ...}``
        """
        return await self._call("GET", f"/v2/bot/richmenu/alias/{rich_menu_alias_id}")

    async def delete_rich_menu_alias(self, rich_menu_alias_id: str) -> Dict[str, Any]:
        """Delete an alias. The rich menu it points at is left untouched."""
        result = await self._call("DELETE", f"/v2/bot/richmenu/alias/{rich_menu_alias_id}")
        logger.info(f"Rich Menu alias '{rich_menu_alias_id}' deleted")
        return result

    async def list_rich_menu_aliases(self) -> List[Dict[str, Any]]:
        """
        List all aliases of the channel.

        Returns:
            Alias objects; empty list when there are none
        """
        result = await self._call("GET", "/v2/bot/richmenu/alias/list")
        if not isinstance(result, dict):
            return []
        return result.get("aliases") or []


_client: Optional[RichMenuClient] = None


def get_rich_menu_client() -> RichMenuClient:
    """
    Get the process-wide client used by the HTTP API and CLI.

    Returns:
        Shared RichMenuClient, created on first use from the global settings
    """
    global _client
    if _client is None:
        _client = RichMenuClient(default_settings)
    return _client


async def reset_rich_menu_client() -> None:
    """Close and drop the shared client."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
