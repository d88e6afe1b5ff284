"""Data seeding utilities for the scheme catalog.

Loads scheme definitions from the bundled ``schemes.json`` file (or a
configured override) into an :class:`InMemorySchemeCatalog`.  Designed to
run once at application startup.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from src.models.scheme import Scheme
from src.services.stores import InMemorySchemeCatalog

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_DATA_DIR: Path = Path(__file__).resolve().parent / "schemes"
_BUNDLED_SCHEMES_PATH: Path = _DATA_DIR / "schemes.json"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_schemes(path: Path | None = None) -> list[Scheme]:
    """Load government scheme data from a JSON file.

    Entries that fail validation (for example an unsupported eligibility
    criterion) are logged and skipped; the rest keep their file order,
    which is the catalog order.

    Parameters
    ----------
    path:
        Path to the JSON file.  Defaults to the bundled ``schemes.json``.

    Raises
    ------
    FileNotFoundError
        If the JSON file does not exist.
    json.JSONDecodeError
        If the JSON is malformed.
    """
    file_path = path or _BUNDLED_SCHEMES_PATH

    if not file_path.exists():
        raise FileNotFoundError(f"Scheme data file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as f:
        raw_schemes: list[dict] = json.load(f)

    schemes: list[Scheme] = []
    for raw in raw_schemes:
        try:
            schemes.append(Scheme.model_validate(raw))
        except ValidationError:
            logger.warning(
                "seed.parse_error",
                scheme_id=raw.get("id", "unknown"),
                exc_info=True,
            )

    logger.info("seed.loaded_schemes", count=len(schemes), source=str(file_path))
    return schemes


def build_catalog(path: Path | None = None) -> InMemorySchemeCatalog:
    """Load the schemes at *path* and wrap them in a catalog."""
    schemes = load_schemes(path)
    if not schemes:
        logger.warning("seed.no_schemes_loaded")
    return InMemorySchemeCatalog(schemes)
