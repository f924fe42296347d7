from __future__ import annotations

import os
from typing import Any

import pytest

from pbcell import boundary, log


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        '--fuzz-n',
        action='store',
        type=int,
        default=50,
        help='Number of random cells per fuzz test (default: 50).',
    )
    parser.addoption(
        '--fuzz-seed',
        action='store',
        type=int,
        default=None,
        help='Optional base seed for fuzz tests.',
    )


@pytest.fixture(scope='session')
def fuzz_settings(request: pytest.FixtureRequest) -> dict[str, Any]:
    """Iteration count and seed shared by fuzz tests."""
    n: int = int(request.config.getoption('--fuzz-n'))
    seed = request.config.getoption('--fuzz-seed')
    if seed is None:
        env_seed = os.environ.get('PBCELL_FUZZ_SEED')
        seed = int(env_seed) if env_seed is not None else 0
    return {'n': n, 'seed': int(seed)}


@pytest.fixture(autouse=True)
def _clean_boundary_state():
    boundary.reset_allocation_failures()
    yield
    boundary.reset_allocation_failures()
    log.log_to_stderr()
    log.set_loglevel(log.LogLevel.WARNING)
