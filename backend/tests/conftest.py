"""Root conftest - shared test configuration and domain fixtures."""

import os

import pytest

# Keep tests off any developer database or .env asset directory
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("FORMS_ASSET_DIR", "assets/forms")

from tests.factories import make_contact_form  # noqa: E402


@pytest.fixture
def contact_form():
    return make_contact_form()
