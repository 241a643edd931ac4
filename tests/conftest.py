import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from services import metrics_service  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics_service.reset_metrics_core()
    yield
    metrics_service.reset_metrics_core()
