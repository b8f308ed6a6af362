"""
Pytest configuration for the PromptPay QR tests.
"""
import sys
from pathlib import Path

import pytest

# The modules live at the repository root
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from qr_appserver import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client
