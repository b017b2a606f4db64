"""
Entry point for the fixturekit backend.

Running this script with ``python run.py`` will start the FastAPI
server that powers the mesh processing and baseplate API (and the
frontend UI when it has been built).  The application defined in
``backend/fixturekit/main.py`` is imported after adjusting the Python
path to include the backend directory.

The bind address can be changed with ``FIXTUREKIT_HOST`` and
``FIXTUREKIT_PORT``.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import logging
import uvicorn

logging.basicConfig(
    level=logging.DEBUG if os.getenv("MESH_DEBUG") else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main() -> None:
    """Run the Uvicorn server hosting the fixturekit application."""
    # Make ``fixturekit`` importable without installing the project.
    backend_dir = Path(__file__).resolve().parent / "backend"
    if str(backend_dir) not in sys.path:
        sys.path.append(str(backend_dir))

    # Import inside main() to avoid modifying sys.path at module import time.
    from fixturekit.main import app  # type: ignore

    host = os.getenv("FIXTUREKIT_HOST", "0.0.0.0")
    port = int(os.getenv("FIXTUREKIT_PORT", "8000"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
