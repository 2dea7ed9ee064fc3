"""Command-line interface for managing LINE rich menus.

Usage:
    richmenu list
    richmenu create --template six-grid --name "Spring campaign"
    richmenu upload-image richmenu-xxxx ./menu.png
    richmenu default set richmenu-xxxx
    richmenu alias create richmenu-alias-a richmenu-xxxx
"""
from typing import Any, Dict, List, Optional
import argparse
import asyncio
import json
import logging
import re
import sys
from pathlib import Path

from pydantic import ValidationError

from richmenu_manager.config import settings, setup_logging
from richmenu_manager.exceptions import (
    NotFoundError,
    RichMenuApiError,
    RichMenuValidationError,
    format_error_for_cli,
)
from richmenu_manager.models.actions import describe_action, parse_action
from richmenu_manager.services.rich_menu_client import RichMenuClient
from richmenu_manager.services.template_service import (
    build_rich_menu,
    deploy_template,
    get_template,
    load_templates,
)


logger = logging.getLogger(__name__)

SEPARATOR = "─" * 80

USER_ID_PATTERN = re.compile(r"U[0-9a-f]{32}")


def line_user_id(value: str) -> str:
    """argparse type for LINE user IDs (``U`` followed by 32 hex characters)."""
    if not USER_ID_PATTERN.fullmatch(value):
        raise argparse.ArgumentTypeError(f"invalid LINE user ID: {value}")
    return value


def print_result(label: str, message: str) -> None:
    print(f"✅ {label}: {message}")


def print_menu(menu: Dict[str, Any], index: Optional[int] = None) -> None:
    """Print one rich menu in the list format."""
    prefix = f"  {index}. " if index is not None else "  "
    size = menu.get("size", {})
    print(f"{prefix}Name: {menu.get('name')}")
    print(f"     ID: {menu.get('richMenuId')}")
    print(f"     Size: {size.get('width')} x {size.get('height')}")
    print(f"     Areas: {len(menu.get('areas', []))}")
    print(f"     Chat bar text: {menu.get('chatBarText')}")
    print(f"     Open by default: {'yes' if menu.get('selected') else 'no'}")


def load_menu_data(args: argparse.Namespace):
    """Build a rich menu from ``--template`` or ``--file``."""
    if args.template:
        template = get_template(args.template)
        if not template.get("data"):
            raise RichMenuValidationError(
                f"Template {args.template} has several pages; use deploy-template instead"
            )
        data = template["data"]
    else:
        path = Path(args.file).resolve()
        if not path.is_file():
            raise RichMenuValidationError(f"File not found: {path}", details={"path": str(path)})
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise RichMenuValidationError(f"{path} is not valid JSON: {e}", details={"path": str(path)})
    return build_rich_menu(data, name=args.name, chat_bar_text=args.chat_bar_text)


def read_user_ids(args: argparse.Namespace) -> List[str]:
    """User IDs from positional arguments and/or a file with one ID per line."""
    user_ids = list(args.user_ids or [])
    if args.users_file:
        path = Path(args.users_file)
        if not path.is_file():
            raise RichMenuValidationError(f"File not found: {path.resolve()}")
        user_ids.extend(line.strip() for line in path.read_text(encoding="utf-8").splitlines() if line.strip())
    if not user_ids:
        raise RichMenuValidationError("No user IDs given")
    return user_ids


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------

async def cmd_token_status(client: RichMenuClient, args: argparse.Namespace) -> int:
    preview = client.token_preview()
    if preview:
        print(f"Channel access token: {preview}")
        return 0
    print("⚠️ Channel access token is not set. Use --token or LINE_CHANNEL_ACCESS_TOKEN.")
    return 1


async def cmd_list(client: RichMenuClient, args: argparse.Namespace) -> int:
    menus = await client.list_rich_menus()
    if not menus:
        print("📋 No rich menus.")
        return 0
    print(f"📋 {len(menus)} rich menus:")
    print(SEPARATOR)
    for index, menu in enumerate(menus, start=1):
        print_menu(menu, index)
        print(SEPARATOR)
    return 0


async def cmd_get(client: RichMenuClient, args: argparse.Namespace) -> int:
    menu = await client.get_rich_menu(args.rich_menu_id)
    if args.json:
        print(json.dumps(menu, ensure_ascii=False, indent=2))
        return 0
    print_menu(menu)
    for area in menu.get("areas", []):
        bounds = area["bounds"]
        action = parse_action(area["action"])
        print(f"     - ({bounds['x']},{bounds['y']} {bounds['width']}x{bounds['height']}) {describe_action(action)}")
    return 0


async def cmd_create(client: RichMenuClient, args: argparse.Namespace) -> int:
    menu = load_menu_data(args)
    print("🔍 Validating rich menu...")
    await client.validate_rich_menu(menu)
    if args.validate_only:
        print_result("Validate", "the rich menu is valid")
        return 0
    result = await client.create_rich_menu(menu)
    print_result("Create rich menu", f"ID: {result['richMenuId']}")
    return 0


async def cmd_validate(client: RichMenuClient, args: argparse.Namespace) -> int:
    menu = load_menu_data(args)
    await client.validate_rich_menu(menu)
    print_result("Validate", "the rich menu is valid")
    return 0


async def cmd_delete(client: RichMenuClient, args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input(f"Delete {args.rich_menu_id}? This cannot be undone. [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Cancelled.")
            return 0
    await client.delete_rich_menu(args.rich_menu_id)
    print_result("Delete rich menu", args.rich_menu_id)
    return 0


async def cmd_upload_image(client: RichMenuClient, args: argparse.Namespace) -> int:
    print("📤 Uploading image...")
    await client.upload_rich_menu_image(args.rich_menu_id, args.image_path)
    print_result("Upload image", f"attached to {args.rich_menu_id}")
    return 0


async def cmd_download_image(client: RichMenuClient, args: argparse.Namespace) -> int:
    data = await client.download_rich_menu_image(args.rich_menu_id)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)
    print_result("Download image", f"{len(data)} bytes saved to {output}")
    return 0


async def cmd_default(client: RichMenuClient, args: argparse.Namespace) -> int:
    if args.default_action == "get":
        try:
            result = await client.get_default_rich_menu()
        except NotFoundError:
            print("No default rich menu is set.")
            return 0
        print(f"Default rich menu ID: {result.get('richMenuId')}")
    elif args.default_action == "set":
        await client.set_default_rich_menu(args.rich_menu_id)
        print_result("Set default rich menu", args.rich_menu_id)
    else:
        await client.cancel_default_rich_menu()
        print_result("Clear default rich menu", "done")
    return 0


async def cmd_user(client: RichMenuClient, args: argparse.Namespace) -> int:
    if args.user_action == "link":
        await client.link_rich_menu_to_user(args.user_id, args.rich_menu_id)
        print_result("Link", f"{args.rich_menu_id} → {args.user_id}")
    elif args.user_action == "unlink":
        await client.unlink_rich_menu_from_user(args.user_id)
        print_result("Unlink", args.user_id)
    else:
        try:
            result = await client.get_user_rich_menu(args.user_id)
        except NotFoundError:
            print(f"No rich menu is linked to {args.user_id}.")
            return 0
        print(f"Rich menu linked to {args.user_id}: {result.get('richMenuId')}")
    return 0


async def cmd_bulk(client: RichMenuClient, args: argparse.Namespace) -> int:
    user_ids = read_user_ids(args)
    if args.bulk_action == "link":
        await client.bulk_link_rich_menu(args.rich_menu_id, user_ids)
        print_result("Bulk link", f"{args.rich_menu_id} → {len(user_ids)} users")
    else:
        await client.bulk_unlink_rich_menu(user_ids)
        print_result("Bulk unlink", f"{len(user_ids)} users")
    return 0


async def cmd_alias(client: RichMenuClient, args: argparse.Namespace) -> int:
    action = args.alias_action
    if action == "list":
        aliases = await client.list_rich_menu_aliases()
        if not aliases:
            print("📋 No aliases.")
            return 0
        print(f"📋 {len(aliases)} aliases:")
        for alias in aliases:
            print(f"  → {alias['richMenuAliasId']} ➜ {alias['richMenuId']}")
    elif action == "create":
        await client.create_rich_menu_alias(args.alias_id, args.rich_menu_id)
        print_result("Create alias", f"{args.alias_id} ➜ {args.rich_menu_id}")
    elif action == "update":
        await client.update_rich_menu_alias(args.alias_id, args.rich_menu_id)
        print_result("Update alias", f"{args.alias_id} ➜ {args.rich_menu_id}")
    elif action == "get":
        alias = await client.get_rich_menu_alias(args.alias_id)
        print(f"{alias['richMenuAliasId']} ➜ {alias['richMenuId']}")
    else:
        await client.delete_rich_menu_alias(args.alias_id)
        print_result("Delete alias", args.alias_id)
    return 0


async def cmd_templates(client: RichMenuClient, args: argparse.Namespace) -> int:
    for template in load_templates():
        pages = len(template.get("pages") or []) or 1
        print(f"  {template['id']:<16} {template['name']} ({pages} page{'s' if pages > 1 else ''})")
        print(f"  {'':<16} {template.get('description', '')}")
    return 0


async def cmd_deploy_template(client: RichMenuClient, args: argparse.Namespace) -> int:
    template = get_template(args.template_id)
    if args.clean:
        deleted = await client.delete_all_rich_menus()
        print(f"🗑️  Deleted {len(deleted)} existing rich menus")
    created = await deploy_template(
        client,
        template,
        image_paths=args.image,
        set_default=not args.no_default
    )
    for name, rich_menu_id in created.items():
        print_result("Deploy", f"{name} ➜ {rich_menu_id}")
    return 0


# ----------------------------------------------------------------------
# Parser
# ----------------------------------------------------------------------

def _add_menu_source(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--template", help="ID of a bundled template")
    source.add_argument("--file", help="Path to a rich menu JSON file")
    parser.add_argument("--name", help="Override the management name")
    parser.add_argument("--chat-bar-text", help="Override the chat bar text")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="richmenu",
        description="Manage LINE rich menus"
    )
    parser.add_argument("--token", help="Channel access token (overrides LINE_CHANNEL_ACCESS_TOKEN)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logs")
    commands = parser.add_subparsers(dest="command", required=True)

    p = commands.add_parser("token-status", help="Show whether a token is configured")
    p.set_defaults(handler=cmd_token_status)

    p = commands.add_parser("list", help="List rich menus")
    p.set_defaults(handler=cmd_list)

    p = commands.add_parser("get", help="Show one rich menu")
    p.add_argument("rich_menu_id")
    p.add_argument("--json", action="store_true", help="Print the raw JSON")
    p.set_defaults(handler=cmd_get)

    p = commands.add_parser("create", help="Create a rich menu from a template or JSON file")
    _add_menu_source(p)
    p.add_argument("--validate-only", action="store_true", help="Validate without creating")
    p.set_defaults(handler=cmd_create)

    p = commands.add_parser("validate", help="Validate a rich menu with LINE")
    _add_menu_source(p)
    p.set_defaults(handler=cmd_validate)

    p = commands.add_parser("delete", help="Delete a rich menu")
    p.add_argument("rich_menu_id")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(handler=cmd_delete)

    p = commands.add_parser("upload-image", help="Upload a PNG/JPEG image to a rich menu")
    p.add_argument("rich_menu_id")
    p.add_argument("image_path")
    p.set_defaults(handler=cmd_upload_image)

    p = commands.add_parser("download-image", help="Download the image of a rich menu")
    p.add_argument("rich_menu_id")
    p.add_argument("-o", "--output", required=True)
    p.set_defaults(handler=cmd_download_image)

    p = commands.add_parser("default", help="Manage the default rich menu")
    default_actions = p.add_subparsers(dest="default_action", required=True)
    default_actions.add_parser("get")
    default_actions.add_parser("set").add_argument("rich_menu_id")
    default_actions.add_parser("clear")
    p.set_defaults(handler=cmd_default)

    p = commands.add_parser("user", help="Manage the rich menu of one user")
    user_actions = p.add_subparsers(dest="user_action", required=True)
    link = user_actions.add_parser("link")
    link.add_argument("user_id", type=line_user_id)
    link.add_argument("rich_menu_id")
    user_actions.add_parser("unlink").add_argument("user_id", type=line_user_id)
    user_actions.add_parser("get").add_argument("user_id", type=line_user_id)
    p.set_defaults(handler=cmd_user)

    p = commands.add_parser("bulk", help="Link or unlink up to 500 users at once")
    bulk_actions = p.add_subparsers(dest="bulk_action", required=True)
    bulk_link = bulk_actions.add_parser("link")
    bulk_link.add_argument("rich_menu_id")
    bulk_unlink = bulk_actions.add_parser("unlink")
    for sub in (bulk_link, bulk_unlink):
        sub.add_argument("user_ids", nargs="*", type=line_user_id)
        sub.add_argument("--users-file", help="File with one user ID per line")
    p.set_defaults(handler=cmd_bulk)

    p = commands.add_parser("alias", help="Manage rich menu aliases")
    alias_actions = p.add_subparsers(dest="alias_action", required=True)
    alias_actions.add_parser("list")
    for name in ("create", "update"):
        sub = alias_actions.add_parser(name)
        sub.add_argument("alias_id")
        sub.add_argument("rich_menu_id")
    alias_actions.add_parser("get").add_argument("alias_id")
    alias_actions.add_parser("delete").add_argument("alias_id")
    p.set_defaults(handler=cmd_alias)

    p = commands.add_parser("templates", help="List bundled templates")
    p.set_defaults(handler=cmd_templates)

    p = commands.add_parser("deploy-template", help="Create all menus of a template and set the default")
    p.add_argument("template_id")
    p.add_argument("--image", action="append", help="Image for each page, in order (repeatable)")
    p.add_argument("--no-default", action="store_true", help="Do not set the first page as default")
    p.add_argument("--clean", action="store_true", help="Delete all existing rich menus first")
    p.set_defaults(handler=cmd_deploy_template)

    return parser


async def run(args: argparse.Namespace, client: Optional[RichMenuClient] = None) -> int:
    """
    Run the parsed command.

    Args:
        args: Parsed arguments
        client: Client to use (a new one is created from settings otherwise)

    Returns:
        Process exit code
    """
    client = client or RichMenuClient(settings)
    if args.token:
        client.set_access_token(args.token)

    async with client:
        try:
            return await args.handler(client, args)
        except RichMenuApiError as e:
            print(format_error_for_cli(e), file=sys.stderr)
            return 1
        except ValidationError as e:
            print(f"❌ Invalid rich menu:\n{e}", file=sys.stderr)
            return 1


def main(argv: Optional[List[str]] = None, client: Optional[RichMenuClient] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING")
    return asyncio.run(run(args, client))


if __name__ == "__main__":
    sys.exit(main())
