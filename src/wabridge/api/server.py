"""Console entry point: run the bridge under uvicorn."""

import sys

import uvicorn

from wabridge.infra.settings import get_settings
from wabridge.observability.logging import get_logger

from .factory import create_app

logger = get_logger(__name__)


def main() -> None:
    try:
        settings = get_settings()
        app = create_app(settings=settings)
    except RuntimeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info(
        "whatsapp bridge listening",
        extra={"extra_fields": {"host": settings.host, "port": settings.port}},
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")


if __name__ == "__main__":
    main()
