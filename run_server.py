"""Start the VistaQuest API server."""

import argparse

import uvicorn

from vistaquest.logging_config import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Run the VistaQuest API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args()

    level = setup_logging()
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=level.lower(),
    )


if __name__ == "__main__":
    main()
