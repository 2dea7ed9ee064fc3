"""Pytest configuration and fixtures for tests."""
import json
import re
import uuid
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from richmenu_manager.config import Settings
from richmenu_manager.services.rich_menu_client import RichMenuClient


TEST_TOKEN = "test-channel-access-token-0123456789"

API_HOST = "api.line.me"
DATA_HOST = "api-data.line.me"

USER_ID = "U" + "0123456789abcdef" * 2


def make_settings(**overrides) -> Settings:
    """Settings with test defaults that ignore the developer's environment."""
    values = {
        "line_channel_access_token": TEST_TOKEN,
        "line_api_max_retries": 3,
        "line_api_retry_delay": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def json_response(status_code: int, body: Any) -> httpx.Response:
    return httpx.Response(status_code, json=body)


class FakeLineApi:
    """
    In-memory stand-in for the LINE rich menu endpoints.

    Image endpoints only answer on the data host; on the regular host they
    return 404 like LINE does.
    """

    def __init__(self, token: str = TEST_TOKEN):
        self.token = token
        self.requests: List[httpx.Request] = []
        self.menus: Dict[str, Dict[str, Any]] = {}
        self.images: Dict[str, tuple] = {}
        self.default_menu: Optional[str] = None
        self.user_menus: Dict[str, str] = {}
        self.aliases: Dict[str, str] = {}
        self.routes = [
            ("GET", API_HOST, r"/v2/bot/richmenu/list", self.list_menus),
            ("POST", API_HOST, r"/v2/bot/richmenu/validate", self.validate_menu),
            ("POST", API_HOST, r"/v2/bot/richmenu/bulk/link", self.bulk_link),
            ("POST", API_HOST, r"/v2/bot/richmenu/bulk/unlink", self.bulk_unlink),
            ("GET", API_HOST, r"/v2/bot/richmenu/alias/list", self.list_aliases),
            ("POST", API_HOST, r"/v2/bot/richmenu/alias", self.create_alias),
            ("GET", API_HOST, r"/v2/bot/richmenu/alias/(?P<alias_id>[^/]+)", self.get_alias),
            ("POST", API_HOST, r"/v2/bot/richmenu/alias/(?P<alias_id>[^/]+)", self.update_alias),
            ("DELETE", API_HOST, r"/v2/bot/richmenu/alias/(?P<alias_id>[^/]+)", self.delete_alias),
            ("POST", API_HOST, r"/v2/bot/richmenu", self.create_menu),
            ("GET", API_HOST, r"/v2/bot/richmenu/(?P<menu_id>[^/]+)", self.get_menu),
            ("DELETE", API_HOST, r"/v2/bot/richmenu/(?P<menu_id>[^/]+)", self.delete_menu),
            ("POST", DATA_HOST, r"/v2/bot/richmenu/(?P<menu_id>[^/]+)/content", self.upload_image),
            ("GET", DATA_HOST, r"/v2/bot/richmenu/(?P<menu_id>[^/]+)/content", self.download_image),
            ("GET", API_HOST, r"/v2/bot/user/all/richmenu", self.get_default),
            ("DELETE", API_HOST, r"/v2/bot/user/all/richmenu", self.cancel_default),
            ("POST", API_HOST, r"/v2/bot/user/all/richmenu/(?P<menu_id>[^/]+)", self.set_default),
            ("GET", API_HOST, r"/v2/bot/user/(?P<user_id>[^/]+)/richmenu", self.get_user_menu),
            ("DELETE", API_HOST, r"/v2/bot/user/(?P<user_id>[^/]+)/richmenu", self.unlink_user),
            ("POST", API_HOST, r"/v2/bot/user/(?P<user_id>[^/]+)/richmenu/(?P<menu_id>[^/]+)", self.link_user),
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return json_response(401, {"message": "Authentication failed. Confirm that the access token in the authorization header is valid."})

        for method, host, pattern, handler in self.routes:
            if request.method != method or request.url.host != host:
                continue
            match = re.fullmatch(pattern, request.url.path)
            if match:
                return handler(request, **match.groupdict())
        return json_response(404, {"message": "Not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def _not_found(self, what: str) -> httpx.Response:
        return json_response(404, {"message": f"{what} not found"})

    # Rich menus

    def list_menus(self, request):
        return json_response(200, {"richmenus": list(self.menus.values())})

    def validate_menu(self, request):
        body = json.loads(request.content)
        missing = [key for key in ("size", "name", "chatBarText", "areas") if key not in body]
        if missing:
            return json_response(400, {"message": "The request body has 1 error(s)", "details": [{"property": key, "message": "must be specified"} for key in missing]})
        return json_response(200, {})

    def create_menu(self, request):
        invalid = self.validate_menu(request)
        if invalid.status_code != 200:
            return invalid
        rich_menu_id = f"richmenu-{uuid.uuid4().hex}"
        self.menus[rich_menu_id] = dict(json.loads(request.content), richMenuId=rich_menu_id)
        return json_response(200, {"richMenuId": rich_menu_id})

    def get_menu(self, request, menu_id):
        if menu_id not in self.menus:
            return self._not_found("richmenu")
        return json_response(200, self.menus[menu_id])

    def delete_menu(self, request, menu_id):
        if self.menus.pop(menu_id, None) is None:
            return self._not_found("richmenu")
        self.images.pop(menu_id, None)
        return json_response(200, {})

    # Images

    def upload_image(self, request, menu_id):
        if menu_id not in self.menus:
            return self._not_found("richmenu")
        if menu_id in self.images:
            return json_response(400, {"message": "An image has already been uploaded to the richmenu"})
        self.images[menu_id] = (request.headers["Content-Type"], request.content)
        return json_response(200, {})

    def download_image(self, request, menu_id):
        if menu_id not in self.images:
            return self._not_found("richmenu image")
        content_type, content = self.images[menu_id]
        return httpx.Response(200, content=content, headers={"Content-Type": content_type})

    # Default menu

    def get_default(self, request):
        if self.default_menu is None:
            return self._not_found("default richmenu")
        return json_response(200, {"richMenuId": self.default_menu})

    def set_default(self, request, menu_id):
        if menu_id not in self.menus:
            return self._not_found("richmenu")
        self.default_menu = menu_id
        return json_response(200, {})

    def cancel_default(self, request):
        self.default_menu = None
        return json_response(200, {})

    # Users

    def link_user(self, request, user_id, menu_id):
        if menu_id not in self.menus:
            return self._not_found("richmenu")
        self.user_menus[user_id] = menu_id
        return json_response(200, {})

    def unlink_user(self, request, user_id):
        self.user_menus.pop(user_id, None)
        return json_response(200, {})

    def get_user_menu(self, request, user_id):
        if user_id not in self.user_menus:
            return self._not_found("the user has no richmenu")
        return json_response(200, {"richMenuId": self.user_menus[user_id]})

    def bulk_link(self, request):
        body = json.loads(request.content)
        for user_id in body["userIds"]:
            self.user_menus[user_id] = body["richMenuId"]
        return httpx.Response(202, text="{}")

    def bulk_unlink(self, request):
        for user_id in json.loads(request.content)["userIds"]:
            self.user_menus.pop(user_id, None)
        return httpx.Response(202, text="{}")

    # Aliases

    def list_aliases(self, request):
        aliases = [{"richMenuAliasId": a, "richMenuId": m} for a, m in self.aliases.items()]
        return json_response(200, {"aliases": aliases})

    def create_alias(self, request):
        body = json.loads(request.content)
        if body["richMenuAliasId"] in self.aliases:
            return json_response(400, {"message": "conflict richmenu alias id"})
        if body["richMenuId"] not in self.menus:
            return self._not_found("richmenu")
        self.aliases[body["richMenuAliasId"]] = body["richMenuId"]
        return json_response(200, {})

    def get_alias(self, request, alias_id):
        if alias_id not in self.aliases:
            return self._not_found("richmenu alias")
        return json_response(200, {"richMenuAliasId": alias_id, "richMenuId": self.aliases[alias_id]})

    def update_alias(self, request, alias_id):
        if alias_id not in self.aliases:
            return self._not_found("richmenu alias")
        self.aliases[alias_id] = json.loads(request.content)["richMenuId"]
        return json_response(200, {})

    def delete_alias(self, request, alias_id):
        if self.aliases.pop(alias_id, None) is None:
            return self._not_found("richmenu alias")
        return json_response(200, {})


class ScriptedTransport:
    """Mock handler returning queued responses in order, then repeating the last one."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = len(self.requests) - 1
        if index >= len(self.responses):
            index = len(self.responses) - 1
        queued = self.responses[index]
        return httpx.Response(queued.status_code, headers=queued.headers, content=queued.content)

    @property
    def call_count(self) -> int:
        return len(self.requests)


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    sleep: Optional[RecordingSleep] = None,
    **settings_overrides
) -> RichMenuClient:
    """Client wired to a mock handler."""
    return RichMenuClient(
        make_settings(**settings_overrides),
        transport=httpx.MockTransport(handler),
        sleep=sleep or RecordingSleep()
    )


@pytest.fixture
def fake_line() -> FakeLineApi:
    """In-memory LINE API."""
    return FakeLineApi()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep replacement recording retry delays."""
    return RecordingSleep()


@pytest.fixture
def client(fake_line: FakeLineApi, recording_sleep: RecordingSleep) -> RichMenuClient:
    """Client talking to the in-memory LINE API."""
    return make_client(fake_line, sleep=recording_sleep)


@pytest.fixture
def sample_menu() -> Dict[str, Any]:
    """Valid 2500x1686 rich menu with a single area."""
    return {
        "size": {"width": 2500, "height": 1686},
        "selected": True,
        "name": "Test menu",
        "chatBarText": "Tap here",
        "areas": [
            {
                "bounds": {"x": 0, "y": 0, "width": 2500, "height": 1686},
                "action": {"type": "postback", "label": "Buy", "data": "action=buy&itemid=123"}
            }
        ]
    }


@pytest.fixture
def png_bytes() -> bytes:
    """500 bytes starting with the PNG signature."""
    signature = b"\x89PNG\r\n\x1a\n"
    return signature + bytes(range(256)) + bytes(500 - 8 - 256)


def refuse_connection(request: httpx.Request) -> httpx.Response:
    """Mock handler for a LINE host that cannot be reached."""
    raise httpx.ConnectError("connection refused", request=request)
