"""
Main CLI Entry Point

Preprocesses an image, clusters it with Kernel Power K-Means and counts
the connected areas of every cluster. Prints a JSON summary to stdout.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from .kernel_kmeans import (
    ClusteringConfig,
    InvalidConfigurationError,
    KernelPowerKMeans,
    NumericalDegeneracyError
)
from .preprocess import PreprocessConfig, preprocess
from .regions import count_all_regions

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False):
    """Logging to stderr so stdout stays machine-readable."""
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    logging.basicConfig(level=level, handlers=[handler], force=True)


def build_parser() -> argparse.ArgumentParser:
    defaults = ClusteringConfig()
    parser = argparse.ArgumentParser(
        prog="imganalysis",
        description="Kernel Power K-Means segmentation and area counting of an image"
    )
    parser.add_argument("image", type=Path, help="Input image file")
    parser.add_argument("-k", "--clusters", type=int, default=defaults.n_clusters,
                        help="Number of clusters (default: %(default)s)")
    parser.add_argument("--max-clusters", type=int, default=defaults.max_clusters,
                        help="Cluster capacity (default: %(default)s)")
    parser.add_argument("--power", type=float, default=defaults.power_init,
                        help="Initial negative power exponent (default: %(default)s)")
    parser.add_argument("--height-scale", type=float, default=defaults.height_scale)
    parser.add_argument("--width-scale", type=float, default=defaults.width_scale)
    parser.add_argument("--gray-scale", type=float, default=defaults.gray_scale)
    parser.add_argument("--seed", type=int, default=defaults.random_state)
    parser.add_argument("--power-growth", type=float, default=defaults.power_growth,
                        help="Factor applied to the exponent each iteration (default: %(default)s)")
    parser.add_argument("--max-iter", type=int, default=defaults.max_iter,
                        help="Iteration budget (default: %(default)s)")
    parser.add_argument("--patience", type=int, default=defaults.patience,
                        help="Unchanged iterations before stopping (default: %(default)s)")
    parser.add_argument("--jobs", type=int, default=None,
                        help="Worker threads for cluster updates (default: all cores)")
    parser.add_argument("--blas-threads", type=int, default=defaults.blas_threads,
                        help="Upper bound on BLAS threads during the fit (default: %(default)s)")
    parser.add_argument("--downsample", type=int, default=1,
                        help="Integer shrink factor before clustering (default: 1)")
    parser.add_argument("--no-level", action="store_true",
                        help="Skip background plane leveling")
    parser.add_argument("--save-preprocessed", type=Path, default=None,
                        help="Write the preprocessed grayscale image here")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Save the label array as .npy")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    try:
        config = ClusteringConfig(
            n_clusters=args.clusters,
            max_clusters=args.max_clusters,
            power_init=args.power,
            height_scale=args.height_scale,
            width_scale=args.width_scale,
            gray_scale=args.gray_scale,
            power_growth=args.power_growth,
            max_iter=args.max_iter,
            patience=args.patience,
            random_state=args.seed,
            n_jobs=args.jobs,
            blas_threads=args.blas_threads,
        )
        gray = preprocess(
            args.image,
            PreprocessConfig(
                downsample=args.downsample,
                level=not args.no_level,
                save_path=args.save_preprocessed,
            ),
        )
        result = KernelPowerKMeans(gray, config).fit()
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except (InvalidConfigurationError, NumericalDegeneracyError) as e:
        logger.error(f"Clustering failed: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        return 1

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        np.save(args.output, result.labels)
        logger.info(f"Labels saved to {args.output}")

    regions = count_all_regions(result.labels)
    summary = {
        "image": str(args.image),
        "shape": list(result.labels.shape),
        "status": result.status.value,
        "n_iter": result.n_iter,
        "iteration_log": result.iteration_log.tolist(),
        "clusters": {
            str(label): {
                "pixels": sum(r.area for r in found),
                "regions": len(found),
                "areas": [r.area for r in found],
            }
            for label, found in regions.items()
        },
    }
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
