"""Universal logfire setup for the application."""

import os

import logfire


def configure_logfire() -> None:
    """Configure logfire once, before the FastAPI app is created.

    Data is only shipped when a write token is present so local runs and
    tests keep logging to the console.
    """
    logfire.configure(
        token=os.getenv("LOGFIRE_WRITE_TOKEN"),
        service_name="videotube-api",
        send_to_logfire="if-token-present",
    )


def instrument_libraries():
    """Instrument the clients used to reach MongoDB and Cloudinary."""
    logfire.instrument_httpx()
    logfire.instrument_pymongo()
