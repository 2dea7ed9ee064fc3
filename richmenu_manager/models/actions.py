"""Rich menu area actions.

LINE identifies an action by its ``type`` field. The six types a rich menu
area can carry each have their own model; any other type is kept as an
``UnknownAction`` whose fields are preserved exactly as received.
"""
from pydantic import ConfigDict, Field
from typing import Any, Dict, Literal, Optional, Type, Union

from richmenu_manager.models.base import LineModel


class Action(LineModel):
    """Common fields of every action."""

    type: str
    label: Optional[str] = Field(default=None, max_length=20)


class AltUri(LineModel):
    """Alternative URI opened on LINE for macOS and Windows."""

    desktop: str


class URIAction(Action):
    """Open a URL."""

    type: Literal["uri"] = "uri"
    uri: str = Field(max_length=1000)
    alt_uri: Optional[AltUri] = None


class MessageAction(Action):
    """Send a text message from the user."""

    type: Literal["message"] = "message"
    text: str = Field(max_length=300)


class PostbackAction(Action):
    """Return an opaque data string to the bot's webhook."""

    type: Literal["postback"] = "postback"
    data: str = Field(max_length=300)
    display_text: Optional[str] = Field(default=None, max_length=300)
    text: Optional[str] = None
    input_option: Optional[str] = None
    fill_in_text: Optional[str] = None


class RichMenuSwitchAction(Action):
    """Switch to the rich menu an alias points at."""

    type: Literal["richmenuswitch"] = "richmenuswitch"
    rich_menu_alias_id: str = Field(max_length=32)
    data: str = Field(max_length=300)


class DatetimePickerAction(Action):
    """Let the user pick a date and/or time."""

    type: Literal["datetimepicker"] = "datetimepicker"
    data: str = Field(max_length=300)
    mode: Literal["date", "time", "datetime"]
    initial: Optional[str] = None
    max: Optional[str] = None
    min: Optional[str] = None


class ClipboardAction(Action):
    """Copy text to the user's clipboard."""

    type: Literal["clipboard"] = "clipboard"
    clipboard_text: str = Field(max_length=1000)


class UnknownAction(Action):
    """Action type this tool does not model; all fields round-trip."""

    model_config = ConfigDict(extra="allow")

    label: Optional[str] = None


AnyAction = Union[
    URIAction,
    MessageAction,
    PostbackAction,
    RichMenuSwitchAction,
    DatetimePickerAction,
    ClipboardAction,
    UnknownAction,
]

ACTION_TYPES: Dict[str, Type[Action]] = {
    "uri": URIAction,
    "message": MessageAction,
    "postback": PostbackAction,
    "richmenuswitch": RichMenuSwitchAction,
    "datetimepicker": DatetimePickerAction,
    "clipboard": ClipboardAction,
}


def parse_action(value: Any) -> Action:
    """
    Build the action model matching ``value["type"]``.

    Args:
        value: Action dict as sent to or received from LINE, or a model

    Returns:
        Typed action, or ``UnknownAction`` for unrecognized types

    Raises:
        ValueError: If the value is not an object with a ``type``
    """
    if isinstance(value, Action):
        return value
    if not isinstance(value, dict) or not value.get("type"):
        raise ValueError("action must be an object with a 'type' field")
    action_class = ACTION_TYPES.get(value["type"], UnknownAction)
    return action_class.model_validate(value)


def describe_action(action: Action) -> str:
    """Short one-line summary used by the CLI."""
    if isinstance(action, URIAction):
        return f"uri → {action.uri}"
    if isinstance(action, MessageAction):
        return f"message → {action.text}"
    if isinstance(action, PostbackAction):
        return f"postback → {action.data}"
    if isinstance(action, RichMenuSwitchAction):
        return f"switch → {action.rich_menu_alias_id}"
    if isinstance(action, DatetimePickerAction):
        return f"datetimepicker ({action.mode}) → {action.data}"
    if isinstance(action, ClipboardAction):
        return f"clipboard → {action.clipboard_text}"
    return f"{action.type} (unrecognized)"
