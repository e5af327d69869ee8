from pathlib import Path

import pytest

from placeshare.observability.log import configure_logging

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture(autouse=True, scope="session")
def _structured_logging():
    configure_logging(CONFIG_DIR / "logging.yaml")
