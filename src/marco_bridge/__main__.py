"""Run the bridge with ``python -m marco_bridge``."""

from __future__ import annotations

import uvicorn

from marco_bridge.core.settings import settings


def main() -> None:
    uvicorn.run(
        "marco_bridge.main:app",
        host=settings.bind_address,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
