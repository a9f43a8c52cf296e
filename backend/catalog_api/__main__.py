"""CLI entry point for launching the catalog API with Uvicorn."""
import logging

import uvicorn

from .app import create_app


def main() -> None:
    """Start a development server for the catalog API."""
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
