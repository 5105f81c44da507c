from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from .controller import SweepResult


def plot_training_curve(result: SweepResult, plot_path, *, dpi: int = 150):
    """Bar chart of the training mean per candidate, best candidate highlighted."""
    fig, ax = plt.subplots(figsize=(10, 6))

    labels = [result.family.candidate_label(r.candidate) for r in result.training]
    means = [r.mean for r in result.training]
    x = np.arange(len(labels))
    colors = ["tab:orange" if i == result.best_index else "tab:blue" for i in range(len(labels))]

    bars = ax.bar(x, means, color=colors, alpha=0.8)

    metric_label = result.metric.label(result.cut)
    ax.set_xlabel("Candidate", fontsize=12)
    ax.set_ylabel(f"Mean {metric_label}", fontsize=12)
    ax.set_title(
        f"{result.family.value} training {result.train_range}: mean {metric_label} per candidate",
        fontsize=14,
        fontweight="bold",
    )
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=45, ha="right")
    ax.grid(axis="y", alpha=0.3)

    for bar in bars:
        height = bar.get_height()
        ax.text(
            bar.get_x() + bar.get_width() / 2.0,
            height,
            f"{height:.3f}",
            ha="center",
            va="bottom",
            fontsize=9,
        )

    plt.tight_layout()
    Path(plot_path).parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(plot_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return Path(plot_path)
