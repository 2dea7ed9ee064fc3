#!/usr/bin/env python3
"""
Script to setup a Rich Menu template on the LINE channel.

For every page of the template this script creates the Rich Menu, uploads
its image, points the page alias at it, and finally sets the first page as
the default menu for all users.

Usage:
    python scripts/setup_rich_menu.py TEMPLATE_ID [--image-path PATH ...] [--clean]

Note:
    Images must match the template size (see `richmenu templates`) and be
    PNG or JPEG under 1 MB. Use scripts/generate_rich_menu_image.py to
    create placeholders.
"""
import argparse
import asyncio
import os
import sys

from richmenu_manager.config import settings, setup_logging
from richmenu_manager.exceptions import RichMenuApiError, format_error_for_cli
from richmenu_manager.services.rich_menu_client import RichMenuClient
from richmenu_manager.services.template_service import deploy_template, get_template


async def setup(args: argparse.Namespace) -> int:
    """Deploy the template and print the created Rich Menu IDs."""
    async with RichMenuClient(settings, access_token=args.token) as client:
        try:
            template = get_template(args.template_id)

            # Clean up existing Rich Menus if requested
            if args.clean:
                print("Cleaning up existing Rich Menus...")
                for rich_menu_id in await client.delete_all_rich_menus():
                    print(f"  Deleted Rich Menu: {rich_menu_id}")

            print(f"Deploying template '{args.template_id}'...")
            created = await deploy_template(client, template, image_paths=args.image_path)
        except RichMenuApiError as e:
            print(format_error_for_cli(e))
            return 1

    for name, rich_menu_id in created.items():
        print(f"  {name}: {rich_menu_id}")

    if not args.image_path:
        print("\nNote: No image provided. Upload one before the menu is shown to users:")
        for rich_menu_id in created.values():
            print(f"  richmenu upload-image {rich_menu_id} path/to/image.png")

    print("\nRich Menu setup complete!")
    return 0


def main():
    """Main function to setup Rich Menu."""
    parser = argparse.ArgumentParser(
        description='Setup a Rich Menu template for the LINE bot'
    )
    parser.add_argument('template_id', help='ID of a bundled template')
    parser.add_argument(
        '--image-path',
        action='append',
        help='Image for each template page, in order (PNG or JPEG, repeatable)'
    )
    parser.add_argument(
        '--clean',
        action='store_true',
        help='Delete all existing Rich Menus before creating new ones'
    )
    parser.add_argument(
        '--token',
        default=None,
        help='Channel access token (defaults to LINE_CHANNEL_ACCESS_TOKEN)'
    )

    args = parser.parse_args()

    for image_path in args.image_path or []:
        if not os.path.exists(image_path):
            print(f"Error: Image file not found: {image_path}")
            return 1

    setup_logging()
    return asyncio.run(setup(args))


if __name__ == '__main__':
    sys.exit(main())
