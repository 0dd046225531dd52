from __future__ import annotations

import asyncio
import traceback

from lab_reservations import ReservationServiceClient, ViewController, load_config
from lab_reservations.logging_config import setup_logging


async def _run() -> int:
    config = load_config()
    setup_logging(config.log_level)
    print("[INFO] Lab Reservations Quick Check")
    print(f"[INFO] Reservation service: {config.api_url}")

    client = ReservationServiceClient(config.api_url, timeout=config.request_timeout)
    controller = ViewController(client, tz=config.timezone)

    await controller.select_tab("current")
    if controller.state.error:
        print(f"[FAIL] {controller.state.error}")
        return 1
    print(f"[OK] Active reservations: {len(controller.state.reservations)}")

    await controller.select_tab("past")
    if controller.state.error:
        print(f"[FAIL] {controller.state.error}")
        return 1
    date_range = controller.state.date_range
    print(f"[OK] Past reservations {date_range.start_date}~{date_range.end_date}: {len(controller.state.reservations)}")

    print("[DONE] Quick check completed successfully.")
    return 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
