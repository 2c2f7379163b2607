"""
Estimate SCurV (210) descriptors for a point cloud with normals.

Usage:
    scurv_estimation input.pcd output.pcd [-k N]

The input cloud (PCD or PLY) must carry normal_x/normal_y/normal_z
fields. One 210-value signature is written to the output PCD file.
"""

import argparse
import logging
import os
import sys
import time
from typing import List, Optional

import numpy as np

from scurv import SCurVConfig, SCurVError, SCurVEstimation
from pointcloud_io import (
    get_fields_list, point_normal_cloud, read_point_cloud, save_signatures_pcd
)


INPUT_EXTENSIONS = ('.pcd', '.ply')
OUTPUT_EXTENSIONS = ('.pcd',)


class _ArgumentParser(argparse.ArgumentParser):
    """Exit with status 1 on argument errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(1)


def build_parser(prog: str = "scurv_estimation") -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog=prog, add_help=False)
    parser.add_argument("files", nargs="*")
    parser.add_argument("-k", type=int, default=None)
    parser.add_argument("-h", dest="help", action="store_true")
    return parser


def print_help(prog: str, default_k: int):
    print(f"Syntax is: {prog} input.pcd output.pcd <options>", file=sys.stderr)
    print("  where options are:", file=sys.stderr)
    print(f"                     -k X      = use a fixed number of X-nearest neighbors "
          f"around each point (default: {default_k})", file=sys.stderr)


def load_cloud(filename: str) -> np.ndarray:
    """Load an Nx6 point+normal cloud, reporting progress like the PCL tools."""
    print(f"Loading {filename} ", end="")
    t0 = time.perf_counter()
    pcd = read_point_cloud(filename)
    n_points = len(pcd.points)
    print(f"[done, {(time.perf_counter() - t0) * 1000:g} ms : {n_points} points]")
    print(f"Available dimensions: {get_fields_list(pcd)}")
    return point_normal_cloud(pcd)


def compute(scurv: SCurVEstimation, cloud: np.ndarray, output: List[np.ndarray]):
    print(f"Computing with {scurv.get_k_search()}-nearest neighbors ", end="")
    t0 = time.perf_counter()

    scurv.set_input_cloud(cloud)
    scurv.set_input_normals(cloud)
    scurv.compute(output)

    print(f"[done, {(time.perf_counter() - t0) * 1000:g} ms : {len(output)} points]")


def save_cloud(filename: str, output: List[np.ndarray]):
    print(f"Saving {filename} ", end="")
    t0 = time.perf_counter()
    save_signatures_pcd(filename, output)
    print(f"[done, {(time.perf_counter() - t0) * 1000:g} ms : {len(output)} points]")


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    prog = os.path.basename(sys.argv[0]) or "scurv_estimation"

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    config = SCurVConfig()
    print(f"Estimate SCurV (210) descriptors using SCurVEstimation. "
          f"For more information, use: {prog} -h")

    args = build_parser(prog).parse_args(argv)
    if len(argv) < 2 or args.help:
        print_help(prog, config.k_search)
        return 1

    inputs = [f for f in args.files if f.lower().endswith(INPUT_EXTENSIONS)]
    if len(inputs) != 2 or not inputs[1].lower().endswith(OUTPUT_EXTENSIONS):
        print("Error: Need one input PCD file and one output PCD file to continue.",
              file=sys.stderr)
        return 1
    input_file, output_file = inputs

    # A fresh estimator per run
    scurv = SCurVEstimation(config)
    if args.k is not None and args.k > 1:
        scurv.set_k_search(args.k)

    try:
        cloud = load_cloud(input_file)
    except (OSError, ValueError, SCurVError) as e:
        print()
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output: List[np.ndarray] = []
    try:
        compute(scurv, cloud, output)
    except SCurVError as e:
        print()
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        save_cloud(output_file, output)
    except OSError as e:
        print()
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
