"""Rich menu services package."""
from richmenu_manager.services.rich_menu_client import (
    MAX_BULK_USERS,
    RichMenuClient,
    get_rich_menu_client,
    reset_rich_menu_client,
)
from richmenu_manager.services.template_service import (
    build_rich_menu,
    deploy_template,
    get_template,
    load_templates,
)

__all__ = [
    "MAX_BULK_USERS",
    "RichMenuClient",
    "get_rich_menu_client",
    "reset_rich_menu_client",
    "build_rich_menu",
    "deploy_template",
    "get_template",
    "load_templates",
]
