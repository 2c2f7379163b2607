"""
Visualization of SCurV Signatures

Creates figures showing:
1. The 15 resampled distribution curves of one signature
   (rows: flat / convex / concave, columns: curvature, x, y, z, radial)
2. An overlay of several signatures with their pairwise comparison
3. Per-category surface fractions as a bar chart
"""

import os
from typing import Dict, Optional, Sequence

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from scurv import (
    CATEGORY_NAMES, DISTRIBUTION_NAMES, N_CATEGORIES, N_DISTRIBUTIONS, N_RESAMPLE,
    SCurVEstimation, category_fractions, compare_signatures, reshape_signature
)
from pointcloud_io import load_point_normal_cloud


CATEGORY_COLORS = {'flat': '#95a5a6', 'convex': '#e74c3c', 'concave': '#3498db'}


def plot_signature(signature: np.ndarray, title: str = "SCurV signature", fig=None):
    """
    Plot one signature as a grid of cumulative distribution curves.

    Returns:
    --------
    fig : matplotlib.figure.Figure
    """
    curves = reshape_signature(signature)
    samples = np.linspace(0, 1, N_RESAMPLE)

    if fig is None:
        fig = plt.figure(figsize=(15, 8))
    axes = fig.subplots(N_CATEGORIES, N_DISTRIBUTIONS, sharex=True, sharey=True)

    for c, category in enumerate(CATEGORY_NAMES):
        for j, distribution in enumerate(DISTRIBUTION_NAMES):
            ax = axes[c, j]
            ax.plot(samples, curves[c, j], marker='o', markersize=3,
                    color=CATEGORY_COLORS[category])
            ax.set_ylim(-0.02, 1.02)
            if c == 0:
                ax.set_title(distribution, fontsize=11)
            if j == 0:
                ax.set_ylabel(f'{category}\ncumulative fraction')
            if c == N_CATEGORIES - 1:
                ax.set_xlabel('normalized value')

    fig.suptitle(title, fontsize=12)
    return fig


def plot_signature_comparison(signatures: Dict[str, np.ndarray]):
    """
    Overlay several signatures and print their pairwise metrics.

    Returns:
    --------
    fig : matplotlib.figure.Figure
    """
    names = list(signatures.keys())
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))

    # Flattened curves
    for name in names:
        axes[0].plot(signatures[name], label=name, linewidth=1)
    for boundary in range(N_RESAMPLE * N_DISTRIBUTIONS, N_RESAMPLE * N_DISTRIBUTIONS * N_CATEGORIES,
                          N_RESAMPLE * N_DISTRIBUTIONS):
        axes[0].axvline(boundary, color='black', linestyle='--', alpha=0.3)
    axes[0].set_title('Signatures (flat | convex | concave)', fontsize=11)
    axes[0].set_xlabel('Signature index')
    axes[0].set_ylabel('Cumulative fraction')
    axes[0].legend()

    # Category fractions
    x = np.arange(len(names))
    width = 0.25
    for c, category in enumerate(CATEGORY_NAMES):
        fractions = [category_fractions(signatures[n])[category] for n in names]
        axes[1].bar(x + (c - 1) * width, fractions, width, label=category,
                    color=CATEGORY_COLORS[category])
    axes[1].set_xticks(x)
    axes[1].set_xticklabels(names)
    axes[1].set_ylim(0, 1.05)
    axes[1].set_ylabel('Fraction of points')
    axes[1].set_title('Surface composition', fontsize=11)
    axes[1].legend()

    for i in range(len(names)):
        for k in range(i + 1, len(names)):
            m = compare_signatures(signatures[names[i]], signatures[names[k]])
            print(f"  {names[i]} vs {names[k]}: EMD {m['emd']:.4f}  L2 {m['l2']:.4f}  "
                  f"correlation {m['correlation']:.4f}")

    fig.tight_layout()
    return fig


def create_signature_visualization(
    cloud_paths: Sequence[str],
    output_dir: str = "figures",
    k_search: Optional[int] = None
):
    """Compute signatures for the given clouds and save all figures."""
    os.makedirs(output_dir, exist_ok=True)

    signatures = {}
    for path in cloud_paths:
        name = os.path.splitext(os.path.basename(path))[0]
        print(f"Computing SCurV for {name}...")
        scurv = SCurVEstimation()
        if k_search is not None:
            scurv.set_k_search(k_search)
        cloud = load_point_normal_cloud(path)
        scurv.set_input_cloud(cloud)
        scurv.set_input_normals(cloud)
        signatures[name] = scurv.compute([])

        fig = plot_signature(signatures[name], title=f"SCurV: {name}")
        out = os.path.join(output_dir, f"{name}_signature.png")
        fig.savefig(out, dpi=150, bbox_inches='tight')
        plt.close(fig)
        print(f"Saved: {out}")

    if len(signatures) > 1:
        fig = plot_signature_comparison(signatures)
        out = os.path.join(output_dir, "signature_comparison.png")
        fig.savefig(out, dpi=150, bbox_inches='tight')
        plt.close(fig)
        print(f"Saved: {out}")

    return signatures


if __name__ == "__main__":
    import sys
    create_signature_visualization(sys.argv[1:])
