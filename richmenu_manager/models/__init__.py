"""Rich menu payload models package."""
from richmenu_manager.models.actions import (
    Action,
    AnyAction,
    ClipboardAction,
    DatetimePickerAction,
    MessageAction,
    PostbackAction,
    RichMenuSwitchAction,
    UnknownAction,
    URIAction,
    describe_action,
    parse_action,
)
from richmenu_manager.models.rich_menu import (
    RichMenuAlias,
    RichMenuArea,
    RichMenuBounds,
    RichMenuRequest,
    RichMenuResponse,
    RichMenuSize,
    check_allowed_size,
)

__all__ = [
    "Action",
    "AnyAction",
    "ClipboardAction",
    "DatetimePickerAction",
    "MessageAction",
    "PostbackAction",
    "RichMenuSwitchAction",
    "UnknownAction",
    "URIAction",
    "describe_action",
    "parse_action",
    "RichMenuAlias",
    "RichMenuArea",
    "RichMenuBounds",
    "RichMenuRequest",
    "RichMenuResponse",
    "RichMenuSize",
    "check_allowed_size",
]
