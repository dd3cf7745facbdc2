from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from dotenv import load_dotenv

from healthspot.core.config import Settings
from healthspot.core.headless_map import HeadlessMapWidget
from healthspot.core.location import StaticGeolocation, PERMISSION_DENIED
from healthspot.core.orchestrator import api_config, build_session
from healthspot.core.session import Notice
from healthspot.providers.base import Coordinate
from healthspot.providers.healthspot_api import HealthspotApiProvider


def print_notice(notice: Notice) -> None:
    print(f"[{notice.kind.value}] {notice.title}: {notice.description}")


async def main():
    repo_root = Path(__file__).resolve().parents[2]
    load_dotenv(repo_root / ".env", override=False)
    # Settings read the environment at construction, so build them after .env is loaded
    cfg = Settings()
    logging.basicConfig(level=cfg.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")

    # EXAMPLE_LAT/EXAMPLE_LNG stand in for the browser position; unset means permission was denied
    lat, lng = os.getenv("EXAMPLE_LAT"), os.getenv("EXAMPLE_LNG")
    if lat and lng:
        geolocation = StaticGeolocation(position=(float(lat), float(lng)))
    else:
        geolocation = StaticGeolocation(error_code=PERMISSION_DENIED)

    widget = HeadlessMapWidget(Coordinate(lat=cfg.default_lat, lng=cfg.default_lng))
    async with HealthspotApiProvider(api_config(cfg)) as provider:
        session = build_session(provider, geolocation=geolocation, widget=widget, notifier=print_notice, cfg=cfg)
        await session.start(search=os.getenv("EXAMPLE_SEARCH"))

        for index, record in enumerate(session.state.providers, start=1):
            marker = "*" if record.id == session.state.active_marker_id else " "
            print(f"{marker} {index}. {record.name} ({record.type}) - {record.address}")
        print(f"Map: {len(widget.markers)} markers, camera {widget.camera}")

        if session.can_retry:
            print("Last fetch failed; retrying once")
            await session.retry()

        await session.aclose()

if __name__ == "__main__":
    asyncio.run(main())
