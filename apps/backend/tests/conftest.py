"""
Shared fixtures for backend tests.
"""
import sys
from pathlib import Path

import pytest

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import reset_selector_cache

FIXTURES_DIR = Path(__file__).parent / 'fixtures'

LIST_URL = 'https://www.jobberman.com/jobs'
DETAIL_URL = 'https://www.jobberman.com/listings/senior-accountant-abc12'


def load_fixture(name: str) -> str:
    with open(FIXTURES_DIR / name, 'r', encoding='utf-8') as f:
        return f.read()


@pytest.fixture(autouse=True)
def default_selectors(monkeypatch):
    """Every test starts from the built-in selector cascades."""
    monkeypatch.delenv("JOBBERMAN_SELECTORS_FILE", raising=False)
    reset_selector_cache()
    yield
    reset_selector_cache()


@pytest.fixture
def list_html() -> str:
    return load_fixture('list_page.html')


@pytest.fixture
def detail_html() -> str:
    return load_fixture('detail_page.html')
