"""Main entry point for the agent runtime API."""

import uvicorn
from dotenv import load_dotenv

from agent_runtime.api import create_fastapi_app
from agent_runtime.app import Application
from agent_runtime.config import PROJECT_ROOT, Settings
from agent_runtime.logging_config import setup_logging


def main():
    """Run the application."""
    load_dotenv(PROJECT_ROOT / ".env")

    settings = Settings.from_env()
    setup_logging(settings.log_level)

    app = create_fastapi_app(Application(settings=settings))

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
