# plot_data.py - data for the plot panel, fetched through the foreign runtimes
import logging

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

import runtimes
from results import Error, ErrorKind
from settings import POINTS_MAX, POINTS_MIN

logger = logging.getLogger(__name__)

R_IRIS, PY_GENERATED = "R Iris", "Python Generated Data"
DATASETS = (R_IRIS, PY_GENERATED)
COLUMNS = {
    R_IRIS: ["Sepal.Length", "Sepal.Width", "Petal.Length", "Petal.Width", "Species"],
    PY_GENERATED: ["x", "y"],
}

GENERATE_SNIPPET = """
import numpy as np
import pandas as pd

np.random.seed(seed)
x = np.random.normal(0, 1, n)
y = x * 2 + np.random.normal(0, 1, n)
data = pd.DataFrame({'x': x, 'y': y})
"""

IRIS_SNIPPET = "result <- datasets::iris"


def clamp_points(n) -> int:
    n = int(n)
    if not POINTS_MIN <= n <= POINTS_MAX:
        logger.warning("Point count %d outside [%d, %d]; clamping", n, POINTS_MIN, POINTS_MAX)
    return int(np.clip(n, POINTS_MIN, POINTS_MAX))


def generate_points(handle, n: int, seed: int = 123):
    """n normal x values with y = 2x + noise, generated in the foreign Python."""
    try:
        n = clamp_points(n)
    except (TypeError, ValueError, OverflowError) as e:
        return Error(ErrorKind.EXECUTION_FAILURE, f"invalid point count {n!r}: {e}")
    value = runtimes.run(handle, GENERATE_SNIPPET, {"n": n, "seed": seed}, output="data")
    if isinstance(value, Error):
        return value
    if not isinstance(value, pd.DataFrame) or list(value.columns) != COLUMNS[PY_GENERATED]:
        return Error(ErrorKind.MARSHAL_FAILURE, "generated data is not an x/y table")
    return value


def load_iris(handle):
    value = runtimes.run(handle, IRIS_SNIPPET)
    if isinstance(value, Error):
        return value
    if not isinstance(value, pd.DataFrame) or not set(COLUMNS[R_IRIS]).issubset(value.columns):
        return Error(ErrorKind.MARSHAL_FAILURE, "iris came back without its columns")
    return value


def empty_frame(name: str) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=float) for c in COLUMNS[name]})


def dataset_frame(name: str, python_handle, r_handle, n: int, seed: int = 123):
    """Return (frame, error). On failure the frame is empty and error says why."""
    if name == R_IRIS:
        value = load_iris(r_handle) if r_handle is not None else Error(ErrorKind.RUNTIME_UNAVAILABLE, "R not configured")
    elif name == PY_GENERATED:
        value = (generate_points(python_handle, n, seed) if python_handle is not None
                 else Error(ErrorKind.RUNTIME_UNAVAILABLE, "Python not configured"))
    else:
        raise ValueError(f"Unknown dataset: {name!r}")
    if isinstance(value, Error):
        logger.warning("Dataset %r unavailable: %s", name, value)
        return empty_frame(name), value
    return value, None


def plot_dataset(name: str, frame: pd.DataFrame):
    fig, ax = plt.subplots(figsize=(7, 4.5))
    sns.set_theme(style="whitegrid")
    if frame.empty:
        source = "R" if name == R_IRIS else "Python"
        ax.text(0.5, 0.5, f"{source} data unavailable", ha="center", va="center")
        ax.set_xlim(0, 1); ax.set_ylim(0, 1)
        ax.set_axis_off()
    elif name == R_IRIS:
        sns.scatterplot(data=frame, x="Sepal.Length", y="Sepal.Width", hue="Species",
                        s=60, alpha=0.7, ax=ax)
        ax.set_title("Iris Dataset (R)")
    else:
        sns.regplot(data=frame, x="x", y="y", ax=ax,
                    scatter_kws={"color": "darkblue", "alpha": 0.7},
                    line_kws={"color": "red"})
        ax.set_title("Python Generated Data")
    fig.tight_layout()
    return fig
