# packages.py - installed package listings for the host, a foreign Python and R
import logging
from importlib import metadata
from typing import Iterable, List, Optional, Tuple

import pandas as pd
from packaging.utils import canonicalize_name

import runtimes
from results import Error, ErrorKind, ListingResult, Ok, PackageRecord
from settings import Config, HOST_DEFAULTS, PYTHON_DEFAULTS, R_DEFAULTS

logger = logging.getLogger(__name__)

TARGETS = ("host", "python", "r")
DEFAULT_SUBSETS = {"host": HOST_DEFAULTS, "python": PYTHON_DEFAULTS, "r": R_DEFAULTS}

PY_LIST_SNIPPET = """
try:
    from importlib import metadata
except ImportError:
    import importlib_metadata as metadata
result = []
for dist in metadata.distributions():
    name = dist.metadata["Name"]
    if name:
        result.append((name, dist.version or ""))
"""

R_LIST_SNIPPET = """
pkgs <- installed.packages()[, c("Package", "Version"), drop = FALSE]
result <- data.frame(name = unname(pkgs[, "Package"]), version = unname(pkgs[, "Version"]),
                     stringsAsFactors = FALSE)
"""


def _normalize(target: str, name: str) -> str:
    # pip-style names are case/sep-insensitive, R package names are not
    return name if target == "r" else canonicalize_name(name)


def host_pairs() -> List[Tuple[str, str]]:
    pairs = []
    for dist in metadata.distributions():
        name = dist.metadata["Name"]
        if name:
            pairs.append((name, dist.version or ""))
    return pairs


def _foreign_pairs(target: str, handle):
    value = runtimes.run(handle, PY_LIST_SNIPPET if target == "python" else R_LIST_SNIPPET)
    if isinstance(value, Error):
        return value
    if isinstance(value, pd.DataFrame):
        if not {"name", "version"}.issubset(value.columns):
            return Error(ErrorKind.MARSHAL_FAILURE, "package table lacks name/version columns")
        return [(str(n), str(v)) for n, v in zip(value["name"], value["version"])]
    try:
        return [(str(n), str(v)) for n, v in value]
    except (TypeError, ValueError):
        return Error(ErrorKind.MARSHAL_FAILURE, f"expected (name, version) pairs, got {type(value).__name__}")


def select_records(target: str, pairs: Iterable[Tuple[str, str]], names: Optional[Iterable[str]] = None,
                   show_all: bool = False, defaults: Optional[Iterable[str]] = None,
                   limit: int = 100) -> Ok:
    """Dedupe, filter, sort and truncate raw (name, version) pairs."""
    seen, records = set(), []
    for name, version in pairs:
        key = _normalize(target, name)
        if key in seen:
            continue
        seen.add(key)
        records.append((key, PackageRecord(name, version)))

    if not show_all:
        subset = {_normalize(target, n) for n in (defaults if defaults is not None else DEFAULT_SUBSETS[target])}
        records = [r for r in records if r[0] in subset]
    if names:
        wanted = {_normalize(target, n) for n in names}
        records = [r for r in records if r[0] in wanted]

    ordered = sorted((rec for _, rec in records), key=lambda r: (r.name.lower(), r.name))
    return Ok(records=tuple(ordered[:limit]), total=len(ordered))


def list_packages(target: str, handle=None, names: Optional[Iterable[str]] = None,
                  show_all: bool = False, limit: Optional[int] = None,
                  config: Optional[Config] = None) -> ListingResult:
    """List installed packages for ``target``; failures come back as ``Error``."""
    if target not in TARGETS:
        return Error(ErrorKind.EXECUTION_FAILURE, f"unknown target {target!r}")
    config = config or Config()
    limit = limit if limit is not None else config.MAX_RECORDS
    if target == "host":
        try:
            pairs = host_pairs()
        except Exception as e:
            logger.warning("Host package scan failed: %s", e)
            return Error(ErrorKind.EXECUTION_FAILURE, f"{type(e).__name__}: {e}")
    else:
        if handle is None:
            return Error(ErrorKind.RUNTIME_UNAVAILABLE, f"no {runtimes.KINDS[target]} runtime configured")
        if handle.kind != target:
            return Error(ErrorKind.EXECUTION_FAILURE, f"{handle.label} handle cannot list {target} packages")
        pairs = _foreign_pairs(target, handle)
        if isinstance(pairs, Error):
            return pairs
    result = select_records(target, pairs, names=names, show_all=show_all,
                            defaults=config.DEFAULTS.get(target), limit=limit)
    logger.debug("%s listing: %d of %d records", target, len(result.records), result.total)
    return result
