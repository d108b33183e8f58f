# app.py - R & Python runtime dashboard (Streamlit)
import matplotlib.pyplot as plt
import streamlit as st

import runtimes
from logging_utils import configure_logging
from packages import list_packages
from plot_data import DATASETS, dataset_frame, plot_dataset
from presenter import format_lines, runtime_text, to_frame
from results import Error
from settings import Config, POINTS_DEFAULT, POINTS_MAX, POINTS_MIN
from validation import preflight_environment

MIN_VERSIONS = {"pandas": "1.5", "numpy": "1.23", "streamlit": "1.28"}

st.set_page_config(page_title="R & Python Integration Demo", layout="wide")

# ---------- Runtimes (once per process) ----------
@st.cache_resource(show_spinner=False)
def load_runtimes():
    config = Config.from_env()
    logger = configure_logging(config.LOG_LEVEL)
    handles = {kind: runtimes.RuntimeHandle.from_config(kind, config) for kind in ("python", "r")}
    for handle in handles.values():
        status = runtimes.probe(handle)
        logger.info("%s runtime: %s", handle.label, runtime_text(handle.label, status))
    return config, handles

config, handles = load_runtimes()
py_handle, r_handle = handles["python"], handles["r"]
host_status = runtimes.host_status()
py_status, r_status = runtimes.probe(py_handle), runtimes.probe(r_handle)
python_version_text = runtime_text("Python", py_status)
r_version_text = runtime_text("R", r_status)

# ---------- Layout ----------
st.title("R & Python Integration Demo")

dataset = st.sidebar.selectbox("Select Dataset:", DATASETS)
points = st.sidebar.slider("Number of Data Points:", min_value=POINTS_MIN, max_value=POINTS_MAX,
                           value=POINTS_DEFAULT)
show_all = st.sidebar.checkbox("Show all installed packages", value=False)
name_filter = st.sidebar.text_input("Filter packages (comma-separated):", "")
names = [n.strip() for n in name_filter.split(",") if n.strip()] or None

# ---------- Plot ----------
st.subheader("Data Visualization")
frame, problem = dataset_frame(dataset, py_handle, r_handle, points, seed=config.SEED)
if problem is not None:
    st.info(f"{dataset} unavailable: {problem.message}")
fig = plot_dataset(dataset, frame)
st.pyplot(fig)
plt.close(fig)

# ---------- Package lists ----------
def package_card(title, result, diagnostic, caption):
    st.subheader(title)
    st.caption(caption)
    if isinstance(result, Error):
        st.warning(str(result))
    lines = format_lines(result, diagnostic)
    if not lines:
        st.info("No matching packages found.")
        return
    st.dataframe(to_frame(result, diagnostic), hide_index=True)
    with st.expander("As text"):
        st.text("\n".join(lines))

cols = st.columns(3)
with cols[0]:
    package_card("Dashboard Packages", list_packages("host", names=names, show_all=show_all, config=config),
                 "host-error", runtime_text("Python", host_status))
with cols[1]:
    package_card("Python Packages",
                 list_packages("python", py_handle, names=names, show_all=show_all, config=config),
                 "python-error", python_version_text)
with cols[2]:
    package_card("R Packages",
                 list_packages("r", r_handle, names=names, show_all=show_all, config=config),
                 "r-error", r_version_text)

# ---------- Environment ----------
with st.expander("Environment Diagnostics"):
    preflight_environment(host_status, py_status, r_status, min_versions=MIN_VERSIONS, config=config)
