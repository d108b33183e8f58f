import shutil
import sys

import pytest

import runtimes


@pytest.fixture
def py_handle():
    # the interpreter running the tests doubles as the foreign Python
    return runtimes.RuntimeHandle("python", sys.executable, timeout=120)


@pytest.fixture
def missing_python():
    return runtimes.RuntimeHandle("python", None, requested="/nonexistent/python")


@pytest.fixture
def missing_r():
    return runtimes.RuntimeHandle("r", None, requested="/nonexistent/Rscript")


@pytest.fixture
def r_handle():
    rscript = shutil.which("Rscript")
    if rscript is None:
        pytest.skip("Rscript not installed")
    return runtimes.RuntimeHandle("r", rscript, timeout=120)
