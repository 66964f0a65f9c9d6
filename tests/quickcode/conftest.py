import os

# Tests run offline against the keyword backend; set before settings load.
os.environ["EXTRACTION_BACKEND"] = "demo"

import pytest  # noqa: E402

from src.quickcode.main import app  # noqa: E402


@pytest.fixture
def dependency_overrides():
    yield app.dependency_overrides
    app.dependency_overrides.clear()
