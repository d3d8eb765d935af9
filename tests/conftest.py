"""
Pytest configuration file.

Sets up the Python path so test files can import from the python/ directory,
and provides fake boto3 sessions so no test ever reaches AWS.
"""
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)

ACCOUNT_ID = "123456789012"
ECR_HOSTNAME = f"{ACCOUNT_ID}.dkr.ecr.us-east-1.amazonaws.com"


@pytest.fixture
def aws():
    """Fake boto3 session factory whose clients are MagicMocks keyed by service name"""
    ecr = MagicMock(name="ecr")
    sts = MagicMock(name="sts")
    session = MagicMock(name="session")
    session.client.side_effect = lambda service, **kwargs: {"ecr": ecr, "sts": sts}[service]
    factory = MagicMock(name="session_factory", return_value=session)
    return SimpleNamespace(factory=factory, session=session, ecr=ecr, sts=sts)


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch):
    """Skip backoff delays"""
    sleeps = []
    monkeypatch.setattr("docker_credential_env.retry_utils.time.sleep", sleeps.append)
    return sleeps
