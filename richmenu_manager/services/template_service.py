"""Rich menu templates.

Templates are stored in a JSON file shaped as ``{"templates": [...]}``.
A template either has ``data`` (one rich menu) or ``pages`` (several rich
menus, each with an ``aliasId``, linked by ``richmenuswitch`` actions).
"""
from typing import Any, Dict, List, Optional, Sequence
import copy
import json
import logging
from pathlib import Path

from richmenu_manager.config import settings
from richmenu_manager.exceptions import RichMenuValidationError
from richmenu_manager.models.rich_menu import RichMenuRequest
from richmenu_manager.services.rich_menu_client import ImageInput, RichMenuClient


# Configure logging
logger = logging.getLogger(__name__)


def load_templates(path: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Load all templates.

    Args:
        path: Template file (defaults to ``settings.templates_path``)

    Returns:
        List of template dictionaries
    """
    templates_path = Path(path or settings.templates_path)
    with templates_path.open(encoding="utf-8") as fp:
        return json.load(fp).get("templates", [])


def get_template(template_id: str, path: Optional[str] = None) -> Dict[str, Any]:
    """
    Find a template by ID.

    Raises:
        RichMenuValidationError: If no template has that ID
    """
    for template in load_templates(path):
        if template.get("id") == template_id:
            return template
    raise RichMenuValidationError(
        f"Template not found: {template_id}",
        details={"template_id": template_id}
    )


def template_pages(template: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Pages of a template; single-menu templates have one page without alias."""
    if template.get("data"):
        return [{"aliasId": None, "data": template["data"]}]
    return list(template.get("pages") or [])


def build_rich_menu(
    data: Dict[str, Any],
    name: Optional[str] = None,
    chat_bar_text: Optional[str] = None
) -> RichMenuRequest:
    """
    Build a rich menu from template data, applying overrides.

    Args:
        data: Rich menu object from a template
        name: Replacement management name
        chat_bar_text: Replacement chat bar text

    Returns:
        Validated rich menu request
    """
    menu_data = copy.deepcopy(data)
    if name:
        menu_data["name"] = name
    if chat_bar_text:
        menu_data["chatBarText"] = chat_bar_text
    return RichMenuRequest.model_validate(menu_data)


async def deploy_template(
    client: RichMenuClient,
    template: Dict[str, Any],
    image_paths: Optional[Sequence[Optional[ImageInput]]] = None,
    set_default: bool = True
) -> Dict[str, str]:
    """
    Create every rich menu of a template on LINE.

    For each page the menu is created, its image uploaded (if one is given
    at the same index) and its alias created or re-pointed. The first page
    then becomes the default rich menu.

    Args:
        client: Rich menu client
        template: Template dictionary
        image_paths: Images matched to pages by position
        set_default: Whether to make the first page the default menu

    Returns:
        Mapping of alias (or menu name) to created rich menu ID
    """
    pages = template_pages(template)
    if not pages:
        raise RichMenuValidationError(
            f"Template {template.get('id')} has no rich menu data",
            details={"template_id": template.get("id")}
        )

    images = list(image_paths or [])
    created: Dict[str, str] = {}
    first_id = None

    for index, page in enumerate(pages):
        menu = build_rich_menu(page["data"])
        result = await client.create_rich_menu(menu)
        rich_menu_id = result["richMenuId"]
        first_id = first_id or rich_menu_id

        image = images[index] if index < len(images) else None
        if image is not None:
            await client.upload_rich_menu_image(rich_menu_id, image)
        else:
            logger.warning(f"No image given for '{menu.name}', the menu will not be displayed until one is uploaded")

        alias = page.get("aliasId")
        if alias:
            await client.create_or_update_rich_menu_alias(alias, rich_menu_id)
        created[alias or menu.name] = rich_menu_id

    if set_default:
        await client.set_default_rich_menu(first_id)

    logger.info(f"Template '{template.get('id')}' deployed: {created}")
    return created
