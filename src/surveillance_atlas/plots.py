"""
Bar charts and choropleth maps of the tract table.

Read-only over the data: every function draws, saves a PNG atomically,
closes the figure and returns the output path.
"""

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.patches import Patch

from surveillance_atlas.demographics import PLURALITY_ORDER, RACE_LABELS
from surveillance_atlas.io_utils import atomic_write_figure
from surveillance_atlas.logging_utils import log_output_written
from surveillance_atlas.rates import OTHER_CLASS, TOP_K, top_class_label


RACE_COLORS = {
    "Black": "#1b9e77",
    "White": "#d95f02",
    "Latino": "#7570b3",
    "Asian": "#e7298a",
    "Other": "#66a61e",
}

MISSING_COLOR = "lightgray"


def _save(fig, output_path: Path | str, dpi: int, logger: logging.Logger | None) -> Path:
    fig.tight_layout()
    output_path = atomic_write_figure(output_path, fig, dpi=dpi)
    plt.close(fig)
    if logger:
        log_output_written(logger, output_path)
    return output_path


# =============================================================================
# Bar charts
# =============================================================================

def plot_stops_by_race(
    stops: pd.DataFrame,
    output_path: Path | str,
    colors: dict[str, str] | None = None,
    dpi: int = 150,
    logger: logging.Logger | None = None,
) -> Path:
    """Bar chart of stop counts by normalized race."""
    colors = colors or RACE_COLORS
    counts = stops["race"].value_counts().reindex(RACE_LABELS, fill_value=0)

    fig, ax = plt.subplots(figsize=(8, 5))
    bars = ax.bar(counts.index, counts.values,
                  color=[colors.get(r, "gray") for r in counts.index],
                  edgecolor="black", linewidth=0.5)
    ax.bar_label(bars, labels=[f"{v:,}" for v in counts.values], fontsize=9)
    ax.set_ylabel("Stops")
    ax.set_title("Police stops by race", fontsize=12, fontweight="bold")

    return _save(fig, output_path, dpi, logger)


def race_shares(table: pd.DataFrame, stops: pd.DataFrame) -> pd.DataFrame:
    """Citywide population share vs. stop share for each race category."""
    population = pd.Series(
        {label: table[col].sum(skipna=True) for col, label in PLURALITY_ORDER}
    ).reindex(RACE_LABELS)
    stop_counts = stops["race"].value_counts().reindex(RACE_LABELS, fill_value=0)

    return pd.DataFrame({
        "population_share": population / population.sum() if population.sum() else np.nan,
        "stop_share": stop_counts / stop_counts.sum() if stop_counts.sum() else np.nan,
    })


def plot_population_vs_stops(
    table: pd.DataFrame,
    stops: pd.DataFrame,
    output_path: Path | str,
    dpi: int = 150,
    logger: logging.Logger | None = None,
) -> Path:
    """Grouped bars: share of residents vs. share of stops for each race."""
    shares = race_shares(table, stops)
    x = np.arange(len(shares))
    width = 0.38

    fig, ax = plt.subplots(figsize=(9, 5))
    ax.bar(x - width / 2, shares["population_share"] * 100, width,
           label="Share of population", color="#9ecae1", edgecolor="black", linewidth=0.5)
    ax.bar(x + width / 2, shares["stop_share"] * 100, width,
           label="Share of stops", color="#de2d26", edgecolor="black", linewidth=0.5)
    ax.set_xticks(x)
    ax.set_xticklabels(shares.index)
    ax.set_ylabel("Percent")
    ax.set_title("Population vs. police stops by race", fontsize=12, fontweight="bold")
    ax.legend()

    return _save(fig, output_path, dpi, logger)


def plot_surveillance_by_plurality(
    table: pd.DataFrame,
    output_path: Path | str,
    top_k: int = TOP_K,
    dpi: int = 150,
    logger: logging.Logger | None = None,
) -> Path:
    """Tract counts by plurality race, split into top-K surveilled vs. other."""
    classes = [top_class_label(top_k), OTHER_CLASS]
    counts = (
        table.dropna(subset=["surv_class", "plurality_race"])
        .groupby(["plurality_race", "surv_class"])
        .size()
        .unstack(fill_value=0)
        .reindex(index=RACE_LABELS, columns=classes, fill_value=0)
    )
    x = np.arange(len(counts))
    width = 0.38

    fig, ax = plt.subplots(figsize=(9, 5))
    ax.bar(x - width / 2, counts[classes[0]], width, label=f"{classes[0].title()} surveilled tracts",
           color="#b30000", edgecolor="black", linewidth=0.5)
    ax.bar(x + width / 2, counts[classes[1]], width, label="Other tracts",
           color="#bdbdbd", edgecolor="black", linewidth=0.5)
    ax.set_xticks(x)
    ax.set_xticklabels(counts.index)
    ax.set_xlabel("Plurality race of tract")
    ax.set_ylabel("Tracts")
    ax.set_title("Most-surveilled tracts by plurality race", fontsize=12, fontweight="bold")
    ax.legend()

    return _save(fig, output_path, dpi, logger)


# =============================================================================
# Choropleths
# =============================================================================

def plot_choropleth(
    gdf: gpd.GeoDataFrame,
    column: str,
    output_path: Path | str,
    title: str,
    cmap: str = "OrRd",
    categorical: bool = False,
    dpi: int = 150,
    logger: logging.Logger | None = None,
) -> Path:
    """Tract choropleth of one column; missing values are drawn light gray."""
    fig, ax = plt.subplots(figsize=(10, 10))
    gdf.plot(
        column=column,
        ax=ax,
        cmap=cmap,
        categorical=categorical,
        legend=True,
        edgecolor="#777777",
        linewidth=0.1,
        missing_kwds={"color": MISSING_COLOR, "label": "No data"},
    )
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_axis_off()

    return _save(fig, output_path, dpi, logger)


def plot_race_choropleth(
    gdf: gpd.GeoDataFrame,
    output_path: Path | str,
    column: str = "plurality_race",
    colors: dict[str, str] | None = None,
    dpi: int = 150,
    logger: logging.Logger | None = None,
) -> Path:
    """Plurality race map with the fixed race palette shared by the bar charts."""
    colors = colors or RACE_COLORS
    fill = gdf[column].map(colors).fillna(MISSING_COLOR)

    fig, ax = plt.subplots(figsize=(10, 10))
    gdf.plot(color=fill, ax=ax, edgecolor="#777777", linewidth=0.1)
    handles = [Patch(facecolor=colors[label], label=label) for label in RACE_LABELS if label in colors]
    handles.append(Patch(facecolor=MISSING_COLOR, label="No data"))
    ax.legend(handles=handles, loc="upper left", title="Plurality race")
    ax.set_title("Plurality race by census tract", fontsize=14, fontweight="bold")
    ax.set_axis_off()

    return _save(fig, output_path, dpi, logger)


def build_figures(
    table: gpd.GeoDataFrame,
    stops: pd.DataFrame,
    output_dir: Path | str,
    top_k: int = TOP_K,
    colors: dict[str, str] | None = None,
    dpi: int = 150,
    logger: logging.Logger | None = None,
) -> dict[str, Path]:
    """Render the full figure set for the workshop into `output_dir`."""
    output_dir = Path(output_dir)
    colors = colors or RACE_COLORS

    figures = {
        "stops_by_race": plot_stops_by_race(
            stops, output_dir / "stops_by_race.png", colors, dpi, logger),
        "population_vs_stops": plot_population_vs_stops(
            table, stops, output_dir / "population_vs_stops.png", dpi, logger),
        "surveillance_by_plurality": plot_surveillance_by_plurality(
            table, output_dir / "surveillance_by_plurality.png", top_k, dpi, logger),
        "map_plurality_race": plot_race_choropleth(
            table, output_dir / "map_plurality_race.png", colors=colors, dpi=dpi, logger=logger),
    }

    maps = [
        ("borough", "Borough", "Set2", True),
        ("surv_class", f"Top {top_k} surveilled tracts", "Reds", True),
        ("stop_rate", "Police stops per 1,000 residents", "OrRd", False),
        ("surv_rate", "Effective cameras (200m) per 1,000 residents", "PuRd", False),
        ("median_income", "Median household income", "YlGn", False),
    ]
    for column, title, cmap, categorical in maps:
        if column not in table.columns or table[column].notna().sum() == 0:
            if logger:
                logger.warning(f"Skipping map for '{column}': no values")
            continue
        figures[f"map_{column}"] = plot_choropleth(
            table, column, output_dir / f"map_{column}.png", title,
            cmap=cmap, categorical=categorical, dpi=dpi, logger=logger,
        )

    return figures
