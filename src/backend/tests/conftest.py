import os
import sys

import pytest


# Ensure `src/backend` is on sys.path so imports like `import common...` and `import gateways...` work,
# even when pytest's rootdir is the repository root.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

_FORMS_ENV = (
    "FORMS_UNPARSABLE_CONDITION_POLICY",
    "FORMS_INITIAL_REPEATABLE_INSTANCES",
    "FORMS_PERSISTENCE_BACKEND",
    "FORMS_ATTACHMENT_BACKEND",
    "FORMS_DATA_DIR",
)


@pytest.fixture(autouse=True)
def _isolated_forms_env(monkeypatch):
    # A developer .env must not leak into test runs.
    for name in _FORMS_ENV:
        monkeypatch.delenv(name, raising=False)
