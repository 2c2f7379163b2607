"""
SCurV: Surface Curvature Descriptor for 3D Point Clouds

This module computes SCurV, an object-centered 3D shape descriptor of
210 values, from a point cloud with per-point surface normals. The
descriptor summarizes how the surface of an object is shared between
FLAT, CONVEX and CONCAVE regions, and where those regions lie as seen
from the object's own reference frame.

Pipeline:
1. SCALE NORMALIZATION - the cloud is mapped into a fixed numeric range
2. CURVATURE CLASSIFICATION - every k-neighbourhood is labelled
   flat / convex / concave with a sign-based test
3. DISTRIBUTION ACCUMULATION - per-category histograms of curvature and
   of point projections on the object axes
4. PCHIP RESAMPLING - cumulative histograms are smoothed with a
   shape-preserving cubic Hermite spline and resampled to fixed length

Signature layout: 3 categories x 5 distributions x 14 samples = 210.

Reference:
    Antonio J Rodriguez-Sanchez, Sandor Szedmak and Justus Piater,
    "SCurV: A 3D descriptor for object classification", IROS 2015.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree


logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class SCurVError(Exception):
    """Base class for all SCurV estimation failures."""


class MissingInputError(SCurVError):
    """Cloud or normals not bound, or normals not aligned with the cloud."""


class InvalidParameterError(SCurVError, ValueError):
    """A configuration value is outside its allowed range."""


class InsufficientNeighborsError(SCurVError):
    """The cloud holds fewer points than the requested neighbour count."""


class DegenerateGeometryError(SCurVError):
    """The cloud has zero extent, so it cannot be scale-normalized."""


class NumericDomainError(SCurVError, ValueError):
    """Spline evaluation requested outside of a segment's domain."""


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORY_NAMES = ('flat', 'convex', 'concave')
FLAT, CONVEX, CONCAVE = 0, 1, 2

DISTRIBUTION_NAMES = ('curvature', 'x', 'y', 'z', 'radial')

N_CATEGORIES = len(CATEGORY_NAMES)
N_DISTRIBUTIONS = len(DISTRIBUTION_NAMES)
N_HISTOGRAM_BINS = 10
N_RESAMPLE = 14

SIGNATURE_SIZE = N_CATEGORIES * N_DISTRIBUTIONS * N_RESAMPLE

# Bin positions within this many decimals of an edge land on the edge
BIN_EDGE_DECIMALS = 6

# Surface variation l0 / (l0 + l1 + l2) never exceeds 1/3
MAX_SURFACE_VARIATION = 1.0 / 3.0


@dataclass
class SCurVConfig:
    """Parameters of the SCurV estimation."""

    # Neighbourhood size (includes the query point itself)
    k_search: int = 19

    # Target interval of the scale normalization
    min_range: float = 0.0
    max_range: float = 100.0

    # |mean vote| at or below this is flat
    flat_vote_threshold: float = 0.2
    # Surface variation at or below this is flat
    curvature_epsilon: float = 1e-6

    # Classification loop parallelism
    workers: int = 1
    chunk_size: int = 2048


# =============================================================================
# SCALE NORMALIZATION
# =============================================================================

def get_normalized_value(x, low: float, high: float):
    """
    Return (x - low) / (high - low).

    Works for scalars and numpy arrays alike.

    Raises:
    -------
    DegenerateGeometryError
        If the range is empty (high == low).
    """
    if high == low:
        raise DegenerateGeometryError(
            f"Cannot normalize into an empty range [{low}, {high}]"
        )
    return (x - low) / (high - low)


def normalize_scale(cloud: np.ndarray, min_range: float, max_range: float) -> None:
    """
    Scale-normalize a point cloud in place.

    The cloud is scaled uniformly so that its largest bounding-box side
    spans exactly [min_range, max_range]; the bounding-box centre is moved
    to the middle of the range. Relative shape is preserved, so normals
    stay valid.

    Parameters:
    -----------
    cloud : np.ndarray
        Nx3 array of points (or Nx6 point+normal array; only the first
        three columns are touched). Modified in place.
    min_range, max_range : float
        Target interval

    Raises:
    -------
    DegenerateGeometryError
        If the cloud is empty or all points coincide.
    InvalidParameterError
        If max_range <= min_range.
    """
    if max_range <= min_range:
        raise InvalidParameterError(
            f"Invalid normalization range [{min_range}, {max_range}]"
        )
    if cloud.ndim != 2 or cloud.shape[0] == 0:
        raise DegenerateGeometryError("Cannot normalize an empty cloud")

    xyz = cloud[:, :3]
    lower = xyz.min(axis=0)
    upper = xyz.max(axis=0)
    extent = float(np.max(upper - lower))

    if not np.isfinite(extent) or extent <= 0.0:
        raise DegenerateGeometryError(
            "Cloud has zero extent (single point or coincident points)"
        )

    centre = (lower + upper) / 2
    scale = (max_range - min_range) / extent
    middle = (min_range + max_range) / 2

    xyz -= centre
    xyz *= scale
    xyz += middle

    logger.debug("Scale normalization: extent %.6g -> factor %.6g", extent, scale)


# =============================================================================
# PCHIP: PIECEWISE CUBIC HERMITE INTERPOLATING POLYNOMIAL
# =============================================================================

class HermitePoint(NamedTuple):
    """Control point of a cubic Hermite segment."""
    x: float
    f: float
    d: float


def sign_multiplied(arg1: float, arg2: float) -> float:
    """
    Sign of arg1 * arg2, computed without forming the product.

    Returns -1.0, 0.0 or 1.0, so that extreme magnitudes can never
    overflow or underflow into a wrong sign.
    """
    if arg1 == 0.0 or arg2 == 0.0:
        return 0.0
    if (arg1 < 0.0) == (arg2 < 0.0):
        return 1.0
    return -1.0


def set_spline_pchip(n: int, x: Sequence[float], f: Sequence[float],
                     d: List[float]) -> None:
    """
    Set the derivatives of PCHIP control points.

    Interior derivatives are weighted harmonic means of the neighbouring
    secant slopes, or zero where the data changes direction, so the
    interpolant is monotone wherever the data is. End derivatives use a
    one-sided three-point formula, clipped to keep the shape.

    Parameters:
    -----------
    n : int
        Number of control points
    x : sequence of float
        Strictly increasing abscissae
    f : sequence of float
        Function values
    d : list of float
        Output; filled with n derivative values

    Raises:
    -------
    InvalidParameterError
        If n < 2, the inputs are shorter than n, or x is not strictly
        increasing.
    """
    if n < 2:
        raise InvalidParameterError(f"PCHIP needs at least 2 control points, got {n}")
    if len(x) < n or len(f) < n:
        raise InvalidParameterError("Fewer control values than control points")
    for i in range(1, n):
        if not x[i] > x[i - 1]:
            raise InvalidParameterError("Control point abscissae must be strictly increasing")

    d[:] = [0.0] * n

    h1 = x[1] - x[0]
    del1 = (f[1] - f[0]) / h1

    # Two points: straight line
    if n == 2:
        d[0] = del1
        d[1] = del1
        return

    h2 = x[2] - x[1]
    del2 = (f[2] - f[1]) / h2

    # Left end: shape-preserving three-point formula
    hsum = h1 + h2
    w1 = (h1 + hsum) / hsum
    w2 = -h1 / hsum
    d[0] = w1 * del1 + w2 * del2
    if sign_multiplied(d[0], del1) <= 0.0:
        d[0] = 0.0
    elif sign_multiplied(del1, del2) < 0.0:
        dmax = 3.0 * del1
        if abs(d[0]) > abs(dmax):
            d[0] = dmax

    # Interior points
    for i in range(1, n - 1):
        if i > 1:
            h1 = h2
            h2 = x[i + 1] - x[i]
            hsum = h1 + h2
            del1 = del2
            del2 = (f[i + 1] - f[i]) / h2

        if sign_multiplied(del1, del2) > 0.0:
            hsumt3 = 3.0 * hsum
            w1 = (hsum + h1) / hsumt3
            w2 = (hsum + h2) / hsumt3
            dmax = max(abs(del1), abs(del2))
            dmin = min(abs(del1), abs(del2))
            drat1 = del1 / dmax
            drat2 = del2 / dmax
            d[i] = dmin / (w1 * drat1 + w2 * drat2)
        else:
            # Local extremum or flat run
            d[i] = 0.0

    # Right end
    w1 = -h2 / hsum
    w2 = (h2 + hsum) / hsum
    d[n - 1] = w1 * del1 + w2 * del2
    if sign_multiplied(d[n - 1], del2) <= 0.0:
        d[n - 1] = 0.0
    elif sign_multiplied(del1, del2) < 0.0:
        dmax = 3.0 * del2
        if abs(d[n - 1]) > abs(dmax):
            d[n - 1] = dmax


def get_hermite_derivative_interpolation(point1: HermitePoint, point2: HermitePoint,
                                         xi: float) -> float:
    """
    Evaluate the cubic Hermite segment between two control points at xi.

    Parameters:
    -----------
    point1, point2 : HermitePoint
        Left and right control points (point1.x < point2.x)
    xi : float
        Evaluation position, point1.x <= xi <= point2.x

    Returns:
    --------
    value : float
        Interpolated value; exactly point1.f at point1.x and exactly
        point2.f at point2.x.

    Raises:
    -------
    NumericDomainError
        If xi lies outside the segment or the segment is empty.
    """
    h = point2.x - point1.x
    if not h > 0.0:
        raise NumericDomainError(f"Empty Hermite segment [{point1.x}, {point2.x}]")
    if xi < point1.x or xi > point2.x:
        raise NumericDomainError(
            f"xi={xi} outside of segment [{point1.x}, {point2.x}]"
        )

    t = (xi - point1.x) / h
    t2 = t * t
    t3 = t2 * t

    h00 = 2.0 * t3 - 3.0 * t2 + 1.0
    h10 = t3 - 2.0 * t2 + t
    h01 = -2.0 * t3 + 3.0 * t2
    h11 = t3 - t2

    return (h00 * point1.f + h10 * h * point1.d
            + h01 * point2.f + h11 * h * point2.d)


def pchip_resample(x: Sequence[float], f: Sequence[float],
                   xi: Sequence[float]) -> np.ndarray:
    """
    Fit a PCHIP curve through (x, f) and evaluate it at every xi.

    Parameters:
    -----------
    x, f : sequence of float
        Control points; x strictly increasing
    xi : sequence of float
        Positions within [x[0], x[-1]]

    Returns:
    --------
    values : np.ndarray
        Curve values at xi
    """
    n = len(x)
    d: List[float] = []
    set_spline_pchip(n, x, f, d)

    points = [HermitePoint(float(x[i]), float(f[i]), d[i]) for i in range(n)]
    values = np.empty(len(xi))

    for j, position in enumerate(xi):
        # Segment whose right end is the first abscissa >= position
        seg = int(np.searchsorted(x, position, side='left'))
        seg = min(max(seg, 1), n - 1)
        values[j] = get_hermite_derivative_interpolation(points[seg - 1], points[seg], position)

    return values


# =============================================================================
# NEIGHBOUR SEARCH
# =============================================================================

class KdTreeSearch:
    """
    k-nearest-neighbour search over a point cloud, backed by cKDTree.

    Results include the query point itself, at squared distance 0.
    """

    def __init__(self):
        self._points = None
        self._tree = None

    def set_input_cloud(self, points: np.ndarray):
        self._points = np.asarray(points[:, :3], dtype=np.float64)
        self._tree = cKDTree(self._points)

    def nearest_k_search(self, index: int, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the k nearest neighbours of the point at index.

        Returns:
        --------
        indices : np.ndarray
            Neighbour indices, closest first
        sqr_distances : np.ndarray
            Squared Euclidean distances
        """
        if self._tree is None:
            raise MissingInputError("Search structure has no input cloud")
        distances, indices = self._tree.query(self._points[index], k=k)
        return np.atleast_1d(indices), np.atleast_1d(distances) ** 2


# =============================================================================
# CURVATURE CLASSIFICATION
# =============================================================================

class PointCurvature(NamedTuple):
    """Curvature estimate for one neighbourhood."""
    category: int
    curvature: float
    score: float


def surface_variation(neighbours: np.ndarray) -> float:
    """
    Surface variation l0 / (l0 + l1 + l2) of a neighbourhood.

    l0 <= l1 <= l2 are the eigenvalues of the neighbourhood covariance.
    0 for a plane, at most 1/3 for an isotropic blob.
    """
    centered = neighbours - neighbours.mean(axis=0)
    cov = np.dot(centered.T, centered) / len(neighbours)
    eigenvalues = np.clip(np.linalg.eigvalsh(cov), 0.0, None)
    total = eigenvalues.sum()
    if total <= 0.0:
        return 0.0
    return float(eigenvalues[0] / total)


def classify_point(
    point: np.ndarray,
    normal: np.ndarray,
    neighbour_points: np.ndarray,
    neighbour_normals: np.ndarray,
    flat_vote_threshold: float = 0.2,
    curvature_epsilon: float = 1e-6
) -> PointCurvature:
    """
    Classify the surface patch around a point as flat, convex or concave.

    Every neighbour q with normal m casts a vote. Its height over the
    tangent plane h = (q - p).n and its normal divergence
    g = (m - n).(q - p) must agree: a convex patch bends away from the
    normal (h < 0) while normals spread apart (g > 0), a concave patch
    does the opposite. Disagreeing neighbours vote 0.

    Parameters:
    -----------
    point, normal : np.ndarray
        Query position and unit normal (3,)
    neighbour_points, neighbour_normals : np.ndarray
        Kx3 arrays, query point excluded
    flat_vote_threshold : float
        |mean vote| at or below this gives FLAT
    curvature_epsilon : float
        Surface variation at or below this gives FLAT

    Returns:
    --------
    result : PointCurvature
        Category index, surface variation and mean vote in [-1, 1]
    """
    if len(neighbour_points) == 0:
        return PointCurvature(FLAT, 0.0, 0.0)

    curvature = surface_variation(np.vstack([point, neighbour_points]))

    offsets = neighbour_points - point
    heights = np.dot(offsets, normal)
    divergences = np.einsum('ij,ij->i', neighbour_normals - normal, offsets)

    votes = 0.0
    for h, g in zip(heights, divergences):
        if sign_multiplied(-h, g) > 0.0:
            votes += 1.0 if g > 0.0 else -1.0
    score = votes / len(neighbour_points)

    if curvature <= curvature_epsilon or abs(score) <= flat_vote_threshold:
        category = FLAT
    elif score > 0.0:
        category = CONVEX
    else:
        category = CONCAVE

    return PointCurvature(category, curvature, score)


# =============================================================================
# DISTRIBUTION ACCUMULATION
# =============================================================================

class DistributionAccumulator:
    """
    Per-category histograms of curvature and point projections.

    Counts live in an (N_CATEGORIES, N_DISTRIBUTIONS, N_HISTOGRAM_BINS)
    array. Values passed to add() are already normalized to [0, 1].
    """

    def __init__(self, n_bins: int = N_HISTOGRAM_BINS):
        self.n_bins = n_bins
        self.counts = np.zeros((N_CATEGORIES, N_DISTRIBUTIONS, n_bins), dtype=np.int64)
        self.n_points = 0

    def add(self, category: int, values: Sequence[float]):
        """Add one point: its category and one [0, 1] value per distribution."""
        positions = np.round(np.asarray(values, dtype=np.float64) * self.n_bins, BIN_EDGE_DECIMALS)
        bins = np.clip(np.floor(positions).astype(np.int64), 0, self.n_bins - 1)
        self.counts[category, np.arange(N_DISTRIBUTIONS), bins] += 1
        self.n_points += 1

    def merge(self, other: 'DistributionAccumulator'):
        self.counts += other.counts
        self.n_points += other.n_points

    def category_counts(self) -> np.ndarray:
        return self.counts[:, 0, :].sum(axis=1)

    def control_points(self) -> List[Tuple[np.ndarray, np.ndarray]]:
        """
        Cumulative control-point series, one per histogram.

        x is the bin edges on [0, 1]; f is the cumulative count divided
        by the total number of points, so every series ends at the
        fraction of the cloud in its category.

        Returns:
        --------
        series : list of (x, f)
            Category-major, then distribution order
        """
        edges = np.linspace(0.0, 1.0, self.n_bins + 1)
        total = max(self.n_points, 1)

        series = []
        for c in range(N_CATEGORIES):
            for j in range(N_DISTRIBUTIONS):
                cumulative = np.concatenate([[0], np.cumsum(self.counts[c, j])])
                series.append((edges, cumulative / total))
        return series


def projection_values(point: np.ndarray, curvature: float,
                      min_range: float, max_range: float) -> np.ndarray:
    """
    Normalized distribution values of one point of a scale-normalized cloud.

    Returns curvature, x, y, z and radial distance from the range centre,
    each mapped to [0, 1] with get_normalized_value.
    """
    middle = (min_range + max_range) / 2
    max_radius = (max_range - min_range) / 2 * np.sqrt(3.0)

    values = np.empty(N_DISTRIBUTIONS)
    values[0] = get_normalized_value(curvature, 0.0, MAX_SURFACE_VARIATION)
    values[1:4] = get_normalized_value(point, min_range, max_range)
    values[4] = get_normalized_value(np.linalg.norm(point - middle), 0.0, max_radius)
    return np.clip(values, 0.0, 1.0)


# =============================================================================
# SCURV ESTIMATION
# =============================================================================

class SCurVEstimation:
    """
    Estimate the SCurV signature of a point cloud with normals.

    Usage:
    ------
        scurv = SCurVEstimation()
        scurv.set_k_search(19)
        scurv.set_input_cloud(points)
        scurv.set_input_normals(normals)
        output = []
        scurv.compute(output)

    The bound arrays are never modified; scale normalization works on a
    private copy. One instance must not run compute() concurrently.
    """

    feature_name = "SCurVEstimation"

    def __init__(self, config: Optional[SCurVConfig] = None):
        # Private copy: set_k_search must not leak into the caller's config
        self.config = replace(config) if config is not None else SCurVConfig()
        self._validate_k(self.config.k_search)
        if self.config.workers < 1 or self.config.chunk_size < 1:
            raise InvalidParameterError("workers and chunk_size must be positive")
        self._input = None
        self._normals = None
        self._search_method = None

    @staticmethod
    def _validate_k(k):
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 2:
            raise InvalidParameterError(f"k must be an integer >= 2, got {k!r}")

    def set_k_search(self, k: int):
        self._validate_k(k)
        self.config.k_search = int(k)

    def get_k_search(self) -> int:
        return self.config.k_search

    def set_input_cloud(self, cloud: np.ndarray):
        """Bind an Nx3 point array (or the xyz of an Nx6 point+normal array)."""
        self._input = cloud

    def set_input_normals(self, normals: np.ndarray):
        """Bind an Nx3 normal array (or the normals of an Nx6 point+normal array)."""
        self._normals = normals

    def set_search_method(self, search):
        """Use a custom neighbour search (set_input_cloud + nearest_k_search)."""
        self._search_method = search

    def get_search_method(self):
        return self._search_method

    # -------------------------------------------------------------------------

    def _check_inputs(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._input is None:
            raise MissingInputError("No input cloud was given")
        if self._normals is None:
            raise MissingInputError("No input normals were given")

        cloud = np.asarray(self._input, dtype=np.float64)
        normals = np.asarray(self._normals, dtype=np.float64)

        if cloud.ndim != 2 or cloud.shape[1] not in (3, 6):
            raise MissingInputError(f"Input cloud must be Nx3 or Nx6, got shape {cloud.shape}")
        if normals.ndim != 2 or normals.shape[1] not in (3, 6):
            raise MissingInputError(f"Input normals must be Nx3 or Nx6, got shape {normals.shape}")
        if len(normals) != len(cloud):
            raise MissingInputError(
                f"Normals are not aligned with the cloud "
                f"({len(normals)} normals for {len(cloud)} points)"
            )

        points = cloud[:, :3].copy()
        normals = normals[:, 3:6] if normals.shape[1] == 6 else normals

        self._validate_k(self.config.k_search)
        if len(points) == 0:
            raise MissingInputError("Input cloud is empty")
        if len(points) < self.config.k_search:
            raise InsufficientNeighborsError(
                f"Cloud has {len(points)} points, fewer than k={self.config.k_search}"
            )
        return points, normals

    def _classify_range(self, points: np.ndarray, normals: np.ndarray,
                        search, start: int, stop: int) -> DistributionAccumulator:
        cfg = self.config
        acc = DistributionAccumulator()

        for i in range(start, stop):
            indices, _ = search.nearest_k_search(i, cfg.k_search)
            indices = indices[indices != i]

            result = classify_point(
                points[i], normals[i], points[indices], normals[indices],
                flat_vote_threshold=cfg.flat_vote_threshold,
                curvature_epsilon=cfg.curvature_epsilon
            )
            acc.add(result.category,
                    projection_values(points[i], result.curvature, cfg.min_range, cfg.max_range))
        return acc

    def compute(self, output: List[np.ndarray]) -> np.ndarray:
        """
        Compute the SCurV signature of the bound cloud.

        Parameters:
        -----------
        output : list
            Receives exactly one signature on success; left untouched
            on failure.

        Returns:
        --------
        signature : np.ndarray
            The 210 values that were appended to output

        Raises:
        -------
        MissingInputError, InvalidParameterError,
        InsufficientNeighborsError, DegenerateGeometryError
        """
        t0 = time.perf_counter()
        cfg = self.config
        points, normals = self._check_inputs()

        normalize_scale(points, cfg.min_range, cfg.max_range)

        search = self._search_method or KdTreeSearch()
        search.set_input_cloud(points)

        n_points = len(points)
        chunks = [(s, min(s + cfg.chunk_size, n_points))
                  for s in range(0, n_points, cfg.chunk_size)]

        if cfg.workers > 1 and len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=cfg.workers) as pool:
                partials = list(pool.map(
                    lambda c: self._classify_range(points, normals, search, c[0], c[1]),
                    chunks
                ))
        else:
            partials = [self._classify_range(points, normals, search, s, e) for s, e in chunks]

        # Merge in chunk order
        acc = DistributionAccumulator()
        for partial in partials:
            acc.merge(partial)

        logger.debug(
            "Categories: %s",
            dict(zip(CATEGORY_NAMES, acc.category_counts().tolist()))
        )

        samples = np.linspace(0.0, 1.0, N_RESAMPLE)
        curves = [pchip_resample(x, f, samples) for x, f in acc.control_points()]
        signature = np.concatenate(curves)

        if len(signature) != SIGNATURE_SIZE:
            raise SCurVError(f"Signature has {len(signature)} values, expected {SIGNATURE_SIZE}")

        output.append(signature)
        logger.info(
            "%s: %d points, k=%d, %.1fms",
            self.feature_name, n_points, cfg.k_search, (time.perf_counter() - t0) * 1000
        )
        return signature


# =============================================================================
# SIGNATURE COMPARISON
# =============================================================================

def reshape_signature(signature: np.ndarray) -> np.ndarray:
    """View a signature as (category, distribution, sample)."""
    signature = np.asarray(signature)
    if signature.shape != (SIGNATURE_SIZE,):
        raise InvalidParameterError(
            f"Expected a signature of {SIGNATURE_SIZE} values, got shape {signature.shape}"
        )
    return signature.reshape(N_CATEGORIES, N_DISTRIBUTIONS, N_RESAMPLE)


def category_fractions(signature: np.ndarray) -> Dict[str, float]:
    """Fraction of the cloud in each category (end value of each curve)."""
    curves = reshape_signature(signature)
    return {name: float(curves[c, 0, -1]) for c, name in enumerate(CATEGORY_NAMES)}


def compare_signatures(sig1: np.ndarray, sig2: np.ndarray) -> Dict[str, float]:
    """
    Compare two SCurV signatures.

    Parameters:
    -----------
    sig1, sig2 : np.ndarray
        Signatures of 210 values

    Returns:
    --------
    metrics : dict
        l1, l2 (lower = more similar), emd (mean absolute difference of the
        cumulative curves = 1D earth mover's distance), chi_squared and
        correlation (higher = more similar, range [-1, 1]).
    """
    c1 = reshape_signature(sig1)
    c2 = reshape_signature(sig2)
    eps = 1e-10

    diff = c1 - c2
    metrics = {}
    metrics['l1'] = float(np.sum(np.abs(diff)))
    metrics['l2'] = float(np.sqrt(np.sum(diff ** 2)))
    metrics['emd'] = float(np.mean(np.abs(diff)))
    metrics['chi_squared'] = float(0.5 * np.sum(diff ** 2 / (np.abs(c1) + np.abs(c2) + eps)))

    a, b = c1.ravel(), c2.ravel()
    if np.std(a) > 0 and np.std(b) > 0:
        metrics['correlation'] = float(np.corrcoef(a, b)[0, 1])
    else:
        metrics['correlation'] = 1.0 if np.allclose(a, b) else 0.0

    return metrics
