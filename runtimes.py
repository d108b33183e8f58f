# runtimes.py - probing foreign interpreters and running snippets in them
"""Bridge to foreign runtimes (a target Python interpreter and R).

Each runtime is reached by spawning its executable: the snippet, the host
bindings and the name of the output variable go in, a single marshaled value
comes back after a marker line. Every failure is returned as an ``Error``;
nothing here raises into the UI.
"""
import io
import json
import keyword
import logging
import math
import os
import platform
import re
import shutil
import subprocess
import sys
import tempfile
from typing import Any, Dict, Optional

import pandas as pd

from results import Error, ErrorKind, RuntimeStatus

logger = logging.getLogger(__name__)

KINDS = {"python": "Python", "r": "R"}
MARKER = "<<<BRIDGE"
_R_NAME = re.compile(r"^[A-Za-z.][A-Za-z0-9._]*$")
_R_MARKER = re.compile(r"^<<<BRIDGE:(frame|vector|error):(.*)>>>$")
# missing strings travel as this token so a literal "NA" string survives
R_STRING_NA = "<<<BRIDGE:NA>>>"

_PY_PROBE = "import json, platform, sys; print(json.dumps({'version': platform.python_version(), 'path': sys.executable}))"
_R_PROBE = 'cat(paste(R.version$major, R.version$minor, sep = "."), R.home(), sep = "\\n")'

_PY_DRIVER = r'''
import json, sys
payload = json.loads(sys.stdin.read())
namespace = dict(payload["bindings"])
marker = payload["marker"]

def emit(obj, status=0):
    sys.stdout.write("\n" + marker + json.dumps(obj) + "\n")
    sys.stdout.flush()
    sys.exit(status)

def native(value):
    if hasattr(value, "to_dict") and hasattr(value, "columns"):
        cols = value.to_dict(orient="list")
        return {"__frame__": dict((str(k), [native(v) for v in col]) for k, col in cols.items())}
    if hasattr(value, "tolist"):
        return value.tolist()
    if isinstance(value, dict):
        return dict((str(k), native(v)) for k, v in value.items())
    if isinstance(value, (list, tuple, set, frozenset)):
        return [native(v) for v in value]
    return value

try:
    exec(compile(payload["snippet"], "<snippet>", "exec"), namespace)
except ImportError as exc:
    emit({"__error__": "ModuleNotFound", "message": str(exc)}, 1)
except Exception as exc:
    emit({"__error__": "ExecutionFailure", "message": "%s: %s" % (type(exc).__name__, exc)}, 1)

if payload["output"] not in namespace:
    emit({"__error__": "MarshalFailure", "message": "no variable named %r" % payload["output"]}, 1)
try:
    text = json.dumps(native(namespace[payload["output"]]))
except (TypeError, ValueError) as exc:
    emit({"__error__": "MarshalFailure", "message": str(exc)}, 1)
sys.stdout.write("\n" + marker + text + "\n")
'''

_R_PRELUDE = '''.bridge_fail <- function(kind, msg) {
  cat("\\n<<<BRIDGE:error:", kind, ">>>\\n", msg, "\\n", sep = "")
  quit(save = "no", status = 1)
}
'''

_R_EPILOGUE = '''if (!exists("{out}", inherits = FALSE)) .bridge_fail("MarshalFailure", "no variable named '{out}'")
.bridge_value <- get("{out}")
.bridge_shape <- if (is.data.frame(.bridge_value)) "frame" else "vector"
if (.bridge_shape == "vector") {{
  if (!is.atomic(.bridge_value)) .bridge_fail("MarshalFailure", paste("cannot marshal object of class", class(.bridge_value)[1]))
  .bridge_value <- data.frame(value = .bridge_value, stringsAsFactors = FALSE)
}}
.bridge_classes <- vapply(.bridge_value, function(col) class(col)[1], character(1))
for (.bridge_col in names(.bridge_value)[.bridge_classes %in% c("character", "factor")]) {{
  .bridge_chr <- as.character(.bridge_value[[.bridge_col]])
  .bridge_chr[is.na(.bridge_chr)] <- "{na}"
  .bridge_value[[.bridge_col]] <- .bridge_chr
}}
cat("\\n<<<BRIDGE:", .bridge_shape, ":", paste(.bridge_classes, collapse = ","), ">>>\\n", sep = "")
write.csv(.bridge_value, stdout(), row.names = FALSE)
'''


def _run_subprocess(*args, **kwargs):
    """subprocess.run with UTF-8 decoding that never fails on stray bytes."""
    if kwargs.get("text", False) and "encoding" not in kwargs:
        kwargs["encoding"] = "utf-8"
        kwargs["errors"] = "replace"
    return subprocess.run(*args, **kwargs)


def discover_python(configured: Optional[str] = None) -> Optional[str]:
    if configured:
        return shutil.which(configured)
    return shutil.which("python") or shutil.which("python3")


def discover_rscript(configured: Optional[str] = None) -> Optional[str]:
    return shutil.which(configured or "Rscript")


class RuntimeHandle:
    """One foreign runtime, built once per process and passed to every call."""

    def __init__(self, kind: str, executable: Optional[str] = None, timeout: int = 30,
                 requested: Optional[str] = None):
        if kind not in KINDS:
            raise ValueError(f"Unknown runtime kind: {kind!r}")
        self.kind = kind
        self.executable = executable
        self.requested = requested or executable
        self.timeout = timeout
        self._status: Optional[RuntimeStatus] = None

    @classmethod
    def from_config(cls, kind: str, config) -> "RuntimeHandle":
        if kind == "python":
            requested = config.PYTHON_EXECUTABLE or "python"
            executable = discover_python(config.PYTHON_EXECUTABLE)
        else:
            requested = config.RSCRIPT_EXECUTABLE or "Rscript"
            executable = discover_rscript(config.RSCRIPT_EXECUTABLE)
        return cls(kind, executable, timeout=config.TIMEOUT, requested=requested)

    @property
    def label(self) -> str:
        return KINDS[self.kind]

    def __repr__(self):
        return f"RuntimeHandle(kind={self.kind!r}, executable={self.executable!r})"


def host_status() -> RuntimeStatus:
    return RuntimeStatus(available=True, version=platform.python_version(), path=sys.executable)


def probe(handle: RuntimeHandle, refresh: bool = False) -> RuntimeStatus:
    """Locate and start the runtime once; never raises."""
    if handle._status is not None and not refresh:
        return handle._status
    try:
        status = _probe(handle)
    except Exception as e:
        logger.exception("Probe of %r crashed", handle)
        status = RuntimeStatus.unavailable(f"{type(e).__name__}: {e}", path=handle.executable)
    if not status.available:
        logger.warning("%s runtime unavailable: %s", handle.label, status.error)
    handle._status = status
    return status


def _probe(handle: RuntimeHandle) -> RuntimeStatus:
    if not handle.executable:
        return RuntimeStatus.unavailable(f"{handle.label} executable {handle.requested!r} not found on PATH")
    if handle.kind == "python":
        cmd = [handle.executable, "-c", _PY_PROBE]
    else:
        cmd = [handle.executable, "-e", _R_PROBE]
    logger.debug("Probing %s", cmd[0])
    try:
        proc = _run_subprocess(cmd, capture_output=True, text=True, timeout=handle.timeout)
    except subprocess.TimeoutExpired:
        return RuntimeStatus.unavailable(f"probe timed out after {handle.timeout}s", path=handle.executable)
    except OSError as e:
        return RuntimeStatus.unavailable(str(e), path=handle.executable)
    if proc.returncode != 0:
        detail = (proc.stderr or "").strip().splitlines()
        return RuntimeStatus.unavailable(detail[-1] if detail else f"exited with code {proc.returncode}",
                                         path=handle.executable)
    lines = [ln for ln in (proc.stdout or "").splitlines() if ln.strip()]
    if handle.kind == "python":
        try:
            info = json.loads(lines[-1])
            return RuntimeStatus(available=True, version=info["version"], path=info["path"])
        except (IndexError, KeyError, TypeError, ValueError):
            return RuntimeStatus.unavailable("unexpected probe output", path=handle.executable)
    if len(lines) < 2:
        return RuntimeStatus.unavailable("unexpected probe output", path=handle.executable)
    return RuntimeStatus(available=True, version=lines[-2].strip(), path=lines[-1].strip())


def run(handle: RuntimeHandle, snippet: str, bindings: Optional[Dict[str, Any]] = None,
        output: str = "result"):
    """Execute ``snippet`` in the foreign runtime and return the ``output`` variable."""
    status = probe(handle)
    if not status.available:
        return Error(ErrorKind.RUNTIME_UNAVAILABLE, status.error or f"{handle.label} not available")
    bindings = dict(bindings or {})
    bad = [n for n in list(bindings) + [output] if not _valid_name(handle.kind, n)]
    if bad:
        return Error(ErrorKind.EXECUTION_FAILURE, f"invalid variable name(s): {', '.join(map(repr, bad))}")
    try:
        if handle.kind == "python":
            result = _run_python(handle, snippet, bindings, output)
        else:
            result = _run_r(handle, snippet, bindings, output)
    except subprocess.TimeoutExpired:
        result = Error(ErrorKind.EXECUTION_FAILURE, f"{handle.label} execution timed out after {handle.timeout}s")
    except OSError as e:
        result = Error(ErrorKind.RUNTIME_UNAVAILABLE, str(e))
    if isinstance(result, Error):
        logger.warning("%s bridge call failed: %s", handle.label, result)
    return result


def _valid_name(kind: str, name) -> bool:
    if not isinstance(name, str):
        return False
    if kind == "python":
        return name.isidentifier() and not keyword.iskeyword(name)
    return bool(_R_NAME.match(name))


# ---------- Python ----------
def _run_python(handle, snippet, bindings, output):
    marker = MARKER + ":json>>>"
    try:
        payload = json.dumps({"snippet": snippet, "bindings": bindings, "output": output, "marker": marker})
    except (TypeError, ValueError) as e:
        return Error(ErrorKind.MARSHAL_FAILURE, f"cannot send bindings: {e}")
    logger.debug("Running %d-char snippet in %s", len(snippet), handle.executable)
    proc = _run_subprocess([handle.executable, "-c", _PY_DRIVER], input=payload,
                           capture_output=True, text=True, timeout=handle.timeout)
    return parse_python_output(proc.stdout, proc.stderr, proc.returncode, marker)


def parse_python_output(stdout: str, stderr: str, returncode: int, marker: str):
    line = next((ln for ln in reversed((stdout or "").splitlines()) if ln.startswith(marker)), None)
    if line is None:
        if returncode != 0:
            return Error(_classify(stderr), _tail(stderr) or f"exited with code {returncode}")
        return Error(ErrorKind.MARSHAL_FAILURE, "no result returned")
    try:
        value = json.loads(line[len(marker):])
    except ValueError as e:
        return Error(ErrorKind.MARSHAL_FAILURE, f"undecodable result: {e}")
    if isinstance(value, dict) and "__error__" in value:
        try:
            kind = ErrorKind(value["__error__"])
        except ValueError:
            kind = ErrorKind.EXECUTION_FAILURE
        return Error(kind, str(value.get("message", "")))
    return _unwrap(value)


def _unwrap(value):
    if isinstance(value, dict):
        if set(value) == {"__frame__"}:
            return pd.DataFrame(value["__frame__"])
        return {k: _unwrap(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_unwrap(v) for v in value]
    return value


def _classify(stderr: str) -> ErrorKind:
    if "ModuleNotFoundError" in (stderr or "") or "there is no package called" in (stderr or ""):
        return ErrorKind.MODULE_NOT_FOUND
    return ErrorKind.EXECUTION_FAILURE


def _tail(text: str) -> str:
    lines = [ln for ln in (text or "").strip().splitlines() if ln.strip()]
    return lines[-1].strip() if lines else ""


# ---------- R ----------
def r_literal(value) -> str:
    """Render a host value as R source; raises TypeError for unsupported values."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return f"{value}L" if abs(value) < 2 ** 31 else repr(float(value))
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Inf" if value > 0 else "-Inf"
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        if any(isinstance(v, (list, tuple, dict)) for v in value):
            raise TypeError("nested sequences cannot be bound in R")
        return "c(" + ", ".join(r_literal(v) for v in value) + ")"
    raise TypeError(f"cannot bind {type(value).__name__} in R")


def build_r_script(snippet: str, bindings: Dict[str, Any], output: str) -> str:
    assigns = "\n".join(f"{name} <- {r_literal(value)}" for name, value in bindings.items())
    body = "\n".join(p for p in (assigns, snippet) if p)
    return (_R_PRELUDE
            + "tryCatch({\n" + body + "\n}, error = function(e) {\n"
            + "  msg <- conditionMessage(e)\n"
            + '  .bridge_fail(if (grepl("there is no package called", msg, fixed = TRUE)) '
            + '"ModuleNotFound" else "ExecutionFailure", msg)\n})\n'
            + _R_EPILOGUE.format(out=output, na=R_STRING_NA))


def _run_r(handle, snippet, bindings, output):
    try:
        script = build_r_script(snippet, bindings, output)
    except TypeError as e:
        return Error(ErrorKind.MARSHAL_FAILURE, str(e))
    tmp_fd, tmp_file = tempfile.mkstemp(suffix=".R", prefix="dashboard_")
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            f.write(script)
        logger.debug("Running %d-char snippet in %s", len(snippet), handle.executable)
        proc = _run_subprocess([handle.executable, "--vanilla", tmp_file],
                               capture_output=True, text=True, timeout=handle.timeout)
    finally:
        try:
            os.unlink(tmp_file)
        except OSError:
            pass
    return parse_r_output(proc.stdout, proc.stderr, proc.returncode)


def parse_r_output(stdout: str, stderr: str, returncode: int):
    lines = (stdout or "").splitlines()
    idx = next((i for i in range(len(lines) - 1, -1, -1) if _R_MARKER.match(lines[i])), None)
    if idx is None:
        if returncode != 0:
            return Error(_classify(stderr), _tail(stderr) or f"Rscript exited with code {returncode}")
        return Error(ErrorKind.MARSHAL_FAILURE, "no result returned")
    shape, detail = _R_MARKER.match(lines[idx]).groups()
    body = "\n".join(lines[idx + 1:])
    if shape == "error":
        try:
            kind = ErrorKind(detail)
        except ValueError:
            kind = ErrorKind.EXECUTION_FAILURE
        return Error(kind, body.strip())
    if returncode != 0:
        # R died after the marker, e.g. inside write.csv; rows so far are partial
        return Error(_classify(stderr), _tail(stderr) or f"Rscript exited with code {returncode}")
    classes = [c for c in detail.split(",") if c]
    if not body.strip():
        frame = pd.DataFrame(columns=[])
    else:
        try:
            frame = pd.read_csv(io.StringIO(body), dtype=str, keep_default_na=False)
        except ValueError as e:  # EmptyDataError and ParserError are ValueErrors
            return Error(ErrorKind.MARSHAL_FAILURE, f"unparsable R output: {e}")
    if len(classes) != len(frame.columns):
        return Error(ErrorKind.MARSHAL_FAILURE, "column classes do not match R output")
    try:
        for col, cls in zip(frame.columns, classes):
            frame[col] = _restore_column(frame[col], cls)
    except (TypeError, ValueError) as e:
        return Error(ErrorKind.MARSHAL_FAILURE, f"column {col!r} ({cls}): {e}")
    if shape == "vector":
        return frame["value"].tolist() if "value" in frame.columns else []
    return frame


def _restore_column(col: pd.Series, cls: str) -> pd.Series:
    if cls in ("numeric", "integer"):
        return pd.to_numeric(col.replace({"NA": float("nan"), "NaN": float("nan"),
                                          "Inf": float("inf"), "-Inf": float("-inf")}))
    if cls == "logical":
        return col.map({"TRUE": True, "FALSE": False, "NA": None})
    if cls in ("character", "factor"):
        return col.mask(col == R_STRING_NA)
    return col
