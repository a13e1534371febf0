"""CLI entry point for Gourmet Lens."""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import logging
import re
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from .camera import MenuCamera
from .config import load_config
from .db import HistoryStore, SQLiteBackend
from .extraction import create_extractor
from .session import AppState, ScanSessionController
from .visual import create_generator


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="gourmet-lens",
        description="Gourmet Lens — scan a menu and see the dishes before you order",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="path to a TOML config file",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # cameras
    sub.add_parser("cameras", help="list available cameras")

    # scan
    scan_parser = sub.add_parser("scan", help="capture a menu and extract its dishes")
    scan_parser.add_argument(
        "--image", type=str, default=None, help="use an existing image file"
    )
    scan_parser.add_argument("--json", action="store_true", help="print JSON")
    scan_parser.add_argument(
        "--no-visual",
        action="store_true",
        help="skip generating a visual for the first dish",
    )
    scan_parser.add_argument(
        "--save-images", type=str, default=None, metavar="DIR",
        help="write generated dish images to DIR",
    )

    # visualize
    vis_parser = sub.add_parser(
        "visualize", help="generate (or retry) the visual for a stored dish"
    )
    vis_parser.add_argument("history_id", help="history entry ID")
    vis_parser.add_argument("dish", type=int, help="dish number as listed (1-based)")
    vis_parser.add_argument(
        "--save-images", type=str, default=None, metavar="DIR",
        help="write the generated image to DIR",
    )

    # history
    hist_parser = sub.add_parser("history", help="browse past scans")
    hist_sub = hist_parser.add_subparsers(dest="history_command")
    hist_sub.add_parser("list", help="list stored scans, newest first")
    show_parser = hist_sub.add_parser("show", help="show one stored scan")
    show_parser.add_argument("history_id", help="history entry ID")
    show_parser.add_argument("--json", action="store_true", help="print JSON")
    clear_parser = hist_sub.add_parser("clear", help="delete all stored scans")
    clear_parser.add_argument(
        "--yes", "-y", action="store_true", help="do not ask for confirmation"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    match args.command:
        case "cameras":
            code = _cmd_cameras()
        case "scan":
            code = asyncio.run(_cmd_scan(config, args))
        case "visualize":
            code = asyncio.run(_cmd_visualize(config, args))
        case "history":
            code = _cmd_history(config, args)
            if code is None:
                hist_parser.print_help()
                code = 1
        case _:
            code = 1

    if code:
        sys.exit(code)


def _open_history(config) -> tuple[HistoryStore, SQLiteBackend]:
    backend = SQLiteBackend(config.history.db_path)
    store = HistoryStore(backend)
    store.load()
    return store, backend


def _build_session(config, store: HistoryStore) -> ScanSessionController:
    return ScanSessionController(
        extractor=create_extractor(config),
        generator=create_generator(config),
        history=store,
    )


def _cmd_cameras() -> int:
    cameras = MenuCamera.list_cameras()
    if not cameras:
        print("No cameras found.")
        return 0
    print(f"Available cameras: {len(cameras)}")
    for idx in cameras:
        print(f"  camera {idx}")
    return 0


async def _cmd_scan(config, args) -> int:
    store, backend = _open_history(config)
    session = _build_session(config, store)
    auto_visualize = not args.no_visual

    try:
        if args.image:
            print(f"📄 Reading {args.image}...")
            await session.upload(args.image, auto_visualize=auto_visualize)
        else:
            camera = MenuCamera(
                index=config.camera.index,
                jpeg_quality=config.camera.jpeg_quality,
                save_dir=config.camera.save_dir,
            )
            print("📷 Capturing...")
            session.start_capture(camera)
            await session.capture(auto_visualize=auto_visualize)

        if session.state is AppState.ERROR:
            print(session.error, file=sys.stderr)
            return 1

        if auto_visualize:
            print("🎨 Rendering the first dish...")
        await session.wait_pending()
        result = session.results
    except (FileNotFoundError, ValueError, RuntimeError, ImportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        session.close()
        backend.close()

    if result is None:
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print()
        print(result.display())
        print(f"\nSaved to history as {store.items[0].id}")

    if args.save_images:
        for n, dish in enumerate(result.dishes, start=1):
            if dish.image_url:
                path = _save_image(dish.image_url, args.save_images, n, dish.name)
                print(f"   image saved: {path}")
    return 0


async def _cmd_visualize(config, args) -> int:
    store, backend = _open_history(config)
    session = _build_session(config, store)

    try:
        session.show_history()
        try:
            result = session.select_history(args.history_id)
        except KeyError:
            print(f"No history entry {args.history_id!r}.", file=sys.stderr)
            return 1

        if not 1 <= args.dish <= len(result.dishes):
            print(
                f"Dish number must be between 1 and {len(result.dishes)}.",
                file=sys.stderr,
            )
            return 1
        dish = result.dishes[args.dish - 1]

        print(f"🎨 Rendering {dish.name}...")
        image_url = await session.visualize(dish.id)
    except ImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        backend.close()

    if image_url is None:
        print(f"{dish.name}: {dish.error}", file=sys.stderr)
        return 1

    print(f"   {dish.name}: visual ready")
    if args.save_images:
        path = _save_image(image_url, args.save_images, args.dish, dish.name)
        print(f"   image saved: {path}")
    return 0


def _cmd_history(config, args) -> int | None:
    store, backend = _open_history(config)
    try:
        match args.history_command:
            case "list":
                items = store.items
                if not items:
                    print("Empty archive.")
                    return 0
                for item in items:
                    when = datetime.fromtimestamp(item.timestamp / 1000)
                    print(
                        f"  {item.id}  {when:%Y-%m-%d}  {item.title}  "
                        f"({len(item.result.dishes)} items)"
                    )
                return 0
            case "show":
                item = store.get(args.history_id)
                if item is None:
                    print(f"No history entry {args.history_id!r}.", file=sys.stderr)
                    return 1
                if args.json:
                    print(json.dumps(item.to_dict(), ensure_ascii=False, indent=2))
                else:
                    print(item.result.display())
                return 0
            case "clear":
                if not args.yes:
                    answer = input(f"Delete all {len(store)} stored scans? [y/N] ")
                    if answer.strip().lower() not in ("y", "yes"):
                        print("Cancelled.")
                        return 0
                store.clear()
                print("History cleared.")
                return 0
            case _:
                return None
    finally:
        backend.close()


def _save_image(data_uri: str, directory: str, number: int, name: str) -> Path:
    header, _, payload = data_uri.partition(",")
    ext = "png"
    match = re.match(r"data:image/(\w+);base64", header)
    if match:
        ext = "jpg" if match.group(1) == "jpeg" else match.group(1)
    slug = re.sub(r"[^\w]+", "_", name).strip("_").lower() or "dish"

    out_dir = Path(directory).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{number:02d}_{slug}.{ext}"
    path.write_bytes(base64.b64decode(payload))
    return path
