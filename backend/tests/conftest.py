"""
Shared pytest setup.

The SQLite database location is read when ``fixturekit.services.db``
is first imported, so the storage directory is redirected to a
temporary folder before any test module imports the application.
"""

import os
import sys
import tempfile
from pathlib import Path

os.environ.setdefault("FIXTUREKIT_STORAGE_DIR", tempfile.mkdtemp(prefix="fixturekit-tests-"))

# Make the backend package and the mesh builders importable
sys.path.append(str(Path(__file__).resolve().parents[1]))
sys.path.append(str(Path(__file__).resolve().parent))
