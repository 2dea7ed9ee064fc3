#!/usr/bin/env python3
"""
Script to generate placeholder Rich Menu images from a template.

One PNG is written per template page, sized to the page and showing each
tappable area with its label.

Requirements:
    pip install Pillow

Usage:
    python scripts/generate_rich_menu_image.py six-grid [--output-dir DIR]
"""
import argparse
import sys
from pathlib import Path

from richmenu_manager.exceptions import RichMenuApiError
from richmenu_manager.services.image_generator import render_placeholder_image
from richmenu_manager.services.template_service import build_rich_menu, get_template, template_pages


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description='Generate placeholder Rich Menu images for a template'
    )
    parser.add_argument('template_id', help='ID of a bundled template')
    parser.add_argument(
        '--output-dir',
        type=str,
        default='.',
        help='Directory for the images (default: current directory)'
    )

    args = parser.parse_args()

    try:
        template = get_template(args.template_id)
    except RichMenuApiError as e:
        print(f"Error: {e.message}")
        return 1

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    outputs = []
    for index, page in enumerate(template_pages(template), start=1):
        menu = build_rich_menu(page["data"])
        output = output_dir / f"{args.template_id}-{index}.png"
        data = render_placeholder_image(menu, output)
        outputs.append(output)
        print(f"Rich Menu image created: {output} ({menu.size.width}x{menu.size.height}, {len(data)} bytes)")

    print("\nYou can now deploy the template with:")
    images = " ".join(f"--image-path {output}" for output in outputs)
    print(f"  python scripts/setup_rich_menu.py {args.template_id} {images}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
