"""
Re-enqueue thumbnail jobs for approved photos that never got one (for
example after a Redis outage), or for every approved photo with --all.

    python -m fwb_gallery.scripts.regenerate_thumbnails [--all]
"""

from __future__ import annotations

import argparse
import asyncio

from fwb_gallery.db import SessionLocal
from fwb_gallery.logging_setup import configure_logging
from fwb_gallery.services.thumbnails import get_thumbnail_dispatcher, redispatch_missing_thumbnails


async def regenerate_thumbnails(regenerate_all: bool = False) -> int:
    async with SessionLocal() as session:
        sent = await redispatch_missing_thumbnails(session, get_thumbnail_dispatcher(), regenerate_all)
    if sent:
        print(f"Dispatched {len(sent)} thumbnail job(s)")
    else:
        print("No photos need thumbnail regeneration")
    return len(sent)


def main() -> None:
    parser = argparse.ArgumentParser(description="Regenerate missing thumbnails for approved photos")
    parser.add_argument("--all", dest="regenerate_all", action="store_true",
                        help="regenerate every approved photo, not just missing ones")
    args = parser.parse_args()
    configure_logging()
    asyncio.run(regenerate_thumbnails(args.regenerate_all))


if __name__ == "__main__":
    main()
