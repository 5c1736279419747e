"""Loading of the mock JSON fixtures."""
from __future__ import annotations

import json
from pathlib import Path

import structlog

from dryad.domain import COLLECTIONS, MockDataState

logger = structlog.get_logger(__name__)


def load_fixtures(data_dir: Path) -> MockDataState:
    """Read ``<collection>.json`` for every collection found in ``data_dir``.

    Missing files leave their collection empty.
    """

    state = MockDataState()
    for name in COLLECTIONS:
        path = data_dir / f"{name}.json"
        if not path.exists():
            logger.warning("fixture_missing", collection=name, path=str(path))
            continue
        with path.open("r", encoding="utf-8") as fp:
            rows = json.load(fp)
        if not isinstance(rows, list):
            raise ValueError(f"fixture {path.name} must contain a JSON array")
        state.collection(name).extend(row for row in rows if isinstance(row, dict))
    logger.info("fixtures_loaded", data_dir=str(data_dir), **{name: len(state.collection(name)) for name in COLLECTIONS})
    return state
