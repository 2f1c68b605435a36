"""Run the device service locally: ``python scripts/run_device.py``."""

from __future__ import annotations

import os

from attendance_sync.main import create_app


def main() -> None:
    app = create_app()
    # The reloader would start a second tracker in the child process.
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), use_reloader=False)


if __name__ == "__main__":
    main()
