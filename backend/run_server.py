"""Clarity Desk backend server with an optional system tray icon."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
import time
from pathlib import Path

# Fix for PyInstaller frozen mode - must be at top
if getattr(sys, "frozen", False):
    import multiprocessing

    multiprocessing.freeze_support()

    # Redirect stdout/stderr for windowless mode
    if sys.stdout is None:
        sys.stdout = open(os.devnull, "w")
    if sys.stderr is None:
        sys.stderr = open(os.devnull, "w")

logger = logging.getLogger("clarity_desk.launcher")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Clarity Desk backend")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-tray", action="store_true", help="run in the foreground without a tray icon")
    parser.add_argument("--log-level", default="INFO")
    args, _ = parser.parse_known_args(argv)
    return args


def get_base_path() -> str:
    """Get the base path for resources."""
    if getattr(sys, "frozen", False):
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.abspath(__file__))


def run_server(host: str, port: int) -> None:
    """Run the FastAPI server."""
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    import uvicorn
    from clarity_desk.main import app

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    uvicorn.Server(config).run()


def main() -> None:
    args = _parse_args(sys.argv[1:])
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.no_tray:
        run_server(args.host, args.port)
        return

    try:
        import pystray
        from PIL import Image
    except ImportError:
        logger.info("pystray/Pillow not installed, running without a tray icon")
        run_server(args.host, args.port)
        return

    import httpx

    base_url = f"http://{args.host}:{args.port}"

    def get_icon_image():
        icon_path = Path(get_base_path()) / "icon.ico"
        if icon_path.exists():
            try:
                return Image.open(icon_path)
            except OSError as exc:
                logger.warning("Failed to load tray icon %s: %s", icon_path, exc)
        return Image.new("RGB", (64, 64), color=(255, 59, 48))

    def on_sync(icon, item):
        try:
            resp = httpx.post(f"{base_url}/api/sync", timeout=600.0)
            resp.raise_for_status()
            summary = resp.json().get("summary", {})
            logger.info("Tray sync: %s", summary)
        except httpx.HTTPError as exc:
            logger.warning("Tray sync failed: %s", exc)

    def on_exit(icon, item):
        icon.stop()
        os._exit(0)

    menu = pystray.Menu(
        pystray.MenuItem("Sync pending records", on_sync),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Exit", on_exit),
    )

    server_thread = threading.Thread(target=run_server, args=(args.host, args.port), daemon=True)
    server_thread.start()
    time.sleep(1)

    icon = pystray.Icon(
        "Clarity Desk",
        get_icon_image(),
        f"Clarity Desk - {args.host}:{args.port}",
        menu,
    )
    icon.run()


if __name__ == "__main__":
    main()
