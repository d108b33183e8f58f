from results import Error, ErrorKind, Ok, PackageRecord, RuntimeStatus, fallback
from presenter import format_lines, runtime_text, to_frame

OK = Ok(records=(PackageRecord("numpy", "1.26.0"), PackageRecord("pandas", "2.1.0")), total=2)


def test_lines_are_name_colon_version():
    assert format_lines(OK) == ["numpy: 1.26.0", "pandas: 2.1.0"]


def test_fallback_is_single_diagnostic_record():
    err = Error(ErrorKind.RUNTIME_UNAVAILABLE, "Python unavailable")
    assert fallback(err, "python-error") == Ok(records=(PackageRecord("python-error", "Python unavailable"),), total=1)
    assert format_lines(err, "python-error") == ["python-error: Python unavailable"]


def test_fallback_without_message_uses_kind():
    assert fallback(Error(ErrorKind.MARSHAL_FAILURE, "")).records[0].version == "MarshalFailure"


def test_table_view():
    frame = to_frame(OK)
    assert list(frame.columns) == ["Package", "Version"]
    assert frame.values.tolist() == [["numpy", "1.26.0"], ["pandas", "2.1.0"]]
    assert len(to_frame(Error(ErrorKind.EXECUTION_FAILURE, "boom"))) == 1


def test_runtime_text():
    assert runtime_text("Python", RuntimeStatus.unavailable("not found")) == "Python not available"
    status = RuntimeStatus(available=True, version="3.11.4", path="/usr/bin/python3")
    assert runtime_text("Python", status) == "Python 3.11.4 (/usr/bin/python3)"
    assert runtime_text("R", RuntimeStatus(available=True, version="4.3.1")) == "R 4.3.1"
