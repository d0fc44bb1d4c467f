import asyncio
import inspect
from collections.abc import Iterator
from pathlib import Path

import pytest

from swarmupdate.config import override_runtime_env
from swarmupdate.utils import metrics


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None
    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None
    fixtureinfo = getattr(pyfuncitem, "_fixtureinfo", None)
    if fixtureinfo is None:
        return None
    kwargs = {name: pyfuncitem.funcargs[name] for name in fixtureinfo.argnames}
    asyncio.run(test_func(**kwargs))
    return True


@pytest.fixture(autouse=True)
def _test_environment() -> Iterator[None]:
    override_runtime_env({})
    metrics.reset_registry()
    try:
        yield
    finally:
        override_runtime_env(None)
        metrics.reset_registry()


@pytest.fixture()
def loop() -> Iterator[asyncio.AbstractEventLoop]:
    """An event loop that is never run, so deadline checks only fire by hand."""

    event_loop = asyncio.new_event_loop()
    try:
        yield event_loop
    finally:
        event_loop.close()


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "i2psnark"
    path.mkdir()
    return path
