"""Rich menu request/response models."""
from pydantic import Field, field_validator, model_validator
from typing import Any, Iterable, List, Tuple

from richmenu_manager.exceptions import RichMenuValidationError
from richmenu_manager.models.actions import AnyAction, parse_action
from richmenu_manager.models.base import LineModel


class RichMenuSize(LineModel):
    """Pixel size of the rich menu image."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)


class RichMenuBounds(LineModel):
    """Tappable rectangle, in image pixels."""

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class RichMenuArea(LineModel):
    """A tappable area and the action it triggers."""

    bounds: RichMenuBounds
    action: AnyAction

    @field_validator("action", mode="before")
    @classmethod
    def _parse_action(cls, value: Any) -> Any:
        return parse_action(value)


class RichMenuRequest(LineModel):
    """Rich menu object sent to the create and validate endpoints."""

    size: RichMenuSize
    selected: bool = False
    name: str = Field(min_length=1, max_length=300)
    chat_bar_text: str = Field(min_length=1, max_length=14)
    areas: List[RichMenuArea] = Field(default_factory=list, max_length=20)

    @model_validator(mode="after")
    def _areas_inside_menu(self) -> "RichMenuRequest":
        for index, area in enumerate(self.areas):
            bounds = area.bounds
            if bounds.x + bounds.width > self.size.width or bounds.y + bounds.height > self.size.height:
                raise ValueError(
                    f"area {index} ({bounds.x},{bounds.y} {bounds.width}x{bounds.height}) "
                    f"exceeds the menu size {self.size.width}x{self.size.height}"
                )
        return self


class RichMenuResponse(RichMenuRequest):
    """Rich menu as returned by LINE."""

    rich_menu_id: str


class RichMenuAlias(LineModel):
    """Alias pointing at a rich menu."""

    rich_menu_alias_id: str = Field(min_length=1, max_length=32)
    rich_menu_id: str


def check_allowed_size(menu: RichMenuRequest, allowed_sizes: Iterable[Tuple[int, int]]) -> None:
    """
    Reject menus whose size LINE does not accept.

    Args:
        menu: Rich menu to check
        allowed_sizes: Accepted (width, height) pairs

    Raises:
        RichMenuValidationError: If the size is not in the list
    """
    allowed = [tuple(size) for size in allowed_sizes]
    size = (menu.size.width, menu.size.height)
    if size not in allowed:
        supported = ", ".join(f"{w}x{h}" for w, h in allowed)
        raise RichMenuValidationError(
            f"Unsupported rich menu size {size[0]}x{size[1]}. Supported sizes: {supported}",
            details={"width": size[0], "height": size[1]}
        )
