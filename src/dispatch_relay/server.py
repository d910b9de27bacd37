"""Server entry point for the GitHub dispatch relay."""

import uvicorn

from dispatch_relay.config import load_settings


def main():
    """Run the FastAPI server."""
    settings = load_settings()
    uvicorn.run(
        "dispatch_relay.api:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
