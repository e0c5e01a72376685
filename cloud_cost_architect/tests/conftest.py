import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1].parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def pytest_runtest_setup():
    # Rebuild the shared catalog per test so CATALOG_DIR overrides don't leak
    from cloud_cost_architect.pricing.catalog import reset_default_catalog

    reset_default_catalog()
