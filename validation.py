import platform
import logging
import psutil
import streamlit as st
from packaging import version
from packaging.utils import canonicalize_name

from packages import list_packages
from presenter import runtime_text
from results import Ok

logger = logging.getLogger(__name__)

def _ok(msg): st.markdown(f"✅ {msg}")
def _warn(msg): st.warning(msg)

def system_memory():
    try:
        mem = psutil.virtual_memory()
        return f"System RAM: {mem.total/1e9:.1f} GB (avail: {mem.available/1e9:.1f} GB)"
    except Exception as e:
        logger.warning("Could not read system memory: %s", e)
        return None

def check_min_versions(result, min_versions):
    """Warnings for every listed package older than its minimum version."""
    if not isinstance(result, Ok) or not min_versions:
        return []
    installed = {canonicalize_name(r.name): r.version for r in result.records}
    warnings = []
    for name, minv in min_versions.items():
        have = installed.get(canonicalize_name(name))
        if have is None:
            continue
        try:
            if version.parse(have) < version.parse(minv):
                warnings.append(f"{name} {have} < {minv}. Consider upgrading.")
        except version.InvalidVersion:
            warnings.append(f"{name}: cannot compare version {have!r} with {minv!r}")
    return warnings

def environment_lines(host, python, r):
    lines = [
        f"Dashboard: {runtime_text('Python', host)}",
        f"Foreign Python: {runtime_text('Python', python)}",
        f"R: {runtime_text('R', r)}",
        f"Platform: {platform.platform()}",
    ]
    mem = system_memory()
    if mem:
        lines.append(mem)
    return lines

def host_version_warnings(min_versions, config=None):
    # independent of the sidebar filter and show-all toggle
    if not min_versions:
        return []
    listing = list_packages("host", names=list(min_versions), show_all=True, config=config)
    return check_min_versions(listing, min_versions)

def preflight_environment(host, python, r, min_versions=None, config=None):
    st.subheader("🔎 Environment")
    for line in environment_lines(host, python, r):
        _ok(line)
    for status, label in ((python, "Python"), (r, "R")):
        if not status.available and status.error:
            _warn(f"{label} runtime: {status.error}")
    for msg in host_version_warnings(min_versions, config):
        _warn(msg)
