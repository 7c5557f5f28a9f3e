import json
import logging
import os
import sys

import pytest

# Ensure the packages are importable without installation
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Relative default paths (policies/, fixtures/) resolve against the project root
os.chdir(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from icu_sl4.models import Input
from icu_sl4.policy import load_policy_yaml
from icu_sl4.signing import KeyPair

SECRET_HEX = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
POLICY_PATH = "policies/hypoxemia_acute.yaml"
CRITICAL_INPUT_PATH = "fixtures/input_critical.json"
DECISION_TIME = "2025-01-01T00:00:00Z"


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # The CLI reconfigures the root logger; keep that from leaking between tests
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def keypair():
    return KeyPair.from_secret_hex(SECRET_HEX)


@pytest.fixture
def policy():
    return load_policy_yaml(POLICY_PATH)


@pytest.fixture
def critical_input():
    with open(CRITICAL_INPUT_PATH, "r", encoding="utf-8") as f:
        return Input.from_dict(json.load(f))


@pytest.fixture
def key_file(tmp_path):
    p = tmp_path / "key.json"
    p.write_text(json.dumps({"secret_hex": SECRET_HEX}), encoding="utf-8")
    return p
