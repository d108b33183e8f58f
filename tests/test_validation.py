from importlib import metadata

from results import Error, ErrorKind, Ok, PackageRecord, RuntimeStatus
from settings import Config
from validation import check_min_versions, environment_lines, host_version_warnings, system_memory


def test_min_version_warnings():
    listing = Ok(records=(PackageRecord("pandas", "1.3.0"), PackageRecord("numpy", "1.26.0"),
                          PackageRecord("weird", "not-a-version")), total=3)
    warnings = check_min_versions(listing, {"pandas": "1.5", "numpy": "1.23", "weird": "1.0", "absent": "2"})
    assert warnings[0] == "pandas 1.3.0 < 1.5. Consider upgrading."
    assert len(warnings) == 2 and "weird" in warnings[1]


def test_min_versions_match_canonical_names():
    listing = Ok(records=(PackageRecord("Scikit_Learn", "0.24.0"),), total=1)
    assert check_min_versions(listing, {"scikit-learn": "1.0"}) == ["scikit-learn 0.24.0 < 1.0. Consider upgrading."]


def test_host_version_warnings_ignore_default_subset():
    config = Config(DEFAULTS={"host": ("seaborn",), "python": (), "r": ()})
    have = metadata.version("pytest")
    warnings = host_version_warnings({"pytest": "9999"}, config=config)
    assert warnings == [f"pytest {have} < 9999. Consider upgrading."]


def test_min_versions_skip_failed_listing():
    assert check_min_versions(Error(ErrorKind.EXECUTION_FAILURE, "x"), {"pandas": "1.5"}) == []


def test_environment_lines_without_foreign_python():
    host = RuntimeStatus(available=True, version="3.12.0", path="/venv/bin/python")
    missing = RuntimeStatus.unavailable("not found")
    lines = environment_lines(host, missing, missing)
    assert "Foreign Python: Python not available" in lines
    assert "R: R not available" in lines
    assert lines[0] == "Dashboard: Python 3.12.0 (/venv/bin/python)"


def test_system_memory():
    assert "GB" in system_memory()
