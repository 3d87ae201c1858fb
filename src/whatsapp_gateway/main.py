"""Command-line entrypoint that serves the API with uvicorn."""

import uvicorn

from whatsapp_gateway.config import Settings


def main() -> None:
    """Run the API server on the configured host and port."""
    settings = Settings()
    uvicorn.run(
        "whatsapp_gateway.api.asgi:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
