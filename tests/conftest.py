"""
Pytest fixtures for WordRoot tests.
"""

import tempfile
from pathlib import Path

import pytest

from wordroot.models import WordRoot
from wordroot.naming import NamingService
from wordroot.settings import SettingsService
from wordroot.storage import NamingDB


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test databases."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db(temp_dir):
    """Empty naming database."""
    return NamingDB(str(temp_dir / "wordroot.db"))


@pytest.fixture
def settings(temp_dir):
    """Settings service with defaults, isolated from the global singleton."""
    return SettingsService(str(temp_dir / "settings.db"))


@pytest.fixture
def service(temp_dir, settings):
    """Naming service over empty databases."""
    return NamingService(db_path=str(temp_dir / "wordroot.db"), settings=settings)


@pytest.fixture
def seeded_service(service):
    """Naming service with the 订单 / 金额 dictionary."""
    service.create_root({
        "cn_name": "订单",
        "en_abbr": "order",
        "en_full_name": "order",
    })
    service.create_root({
        "cn_name": "金额",
        "en_abbr": "amt",
        "en_full_name": "amount",
        "associated_terms": ["钱", "费用", "价格"],
        "data_type": "decimal",
    })
    return service


@pytest.fixture
def make_root():
    """Factory for in-memory WordRoot records (no database)."""
    def _make(root_id, cn_name, en_abbr, synonyms=(), data_type=None):
        return WordRoot(
            id=root_id,
            cn_name=cn_name,
            en_abbr=en_abbr,
            associated_terms=frozenset(synonyms),
            data_type=data_type,
        )
    return _make
