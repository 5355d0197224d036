#!/usr/bin/env python3
"""
Start script - runs the server and optionally opens the widget in a browser

    python start.py            # serve on APP_HOST:APP_PORT (or $PORT)
    python start.py --open     # also open http://host:port/ in the default browser
"""
import argparse
import os
import threading
import time
import webbrowser

from core.config import settings
from core.logging import logger


def open_external_link(url: str) -> None:
    """Open a URL with the platform's default handler."""
    if not webbrowser.open(url):
        logger.warning(f"Failed to open URL {url}: no browser available")


def main() -> None:
    parser = argparse.ArgumentParser(description="PricePulse server")
    parser.add_argument("--host", default=settings.app_host)
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", settings.app_port)))
    parser.add_argument("--open", action="store_true", help="Open the widget in the default browser")
    args = parser.parse_args()

    if args.open:
        # Cache-busting query so the browser does not show a stale widget
        url = f"http://{args.host}:{args.port}/?v={time.time_ns()}"
        threading.Timer(1.0, open_external_link, args=(url,)).start()

    # Import and run uvicorn programmatically
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
