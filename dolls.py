import argparse
import logging
import pathlib
import sys
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from progressbar import progressbar

from combinations import (
    GeneratedSet,
    load_combinations,
    random_combination,
    sequential_combinations,
    total_combinations,
)
from compositor import ImageCache, save_doll
from config import CONFIG_FILE, DATA_PATH, OUTPUT_PATH, parse_config
from errors import ConfigurationError, DollError
from metadata import build_metadata, metadata_frame, save_metadata, write_item_files
from models import Combination, Config
from rarity import OccurrenceTable, print_rarity_report, rarity_report

logger = logging.getLogger(__name__)


class GenerationResult:
    """What a generation run produced, for the caller to save."""

    def __init__(self, config: Config):
        self.combinations: Dict[int, Combination] = {}
        self.metadata: List[Dict[str, Any]] = []
        self.occurrences = OccurrenceTable(config.components)
        self.shortfall = False


def generate(
    config: Config,
    parts: Sequence[Combination] = (),
    offset: int = 0,
    count: Optional[int] = None,
    skip_images: bool = False,
    data_path: pathlib.Path = DATA_PATH,
    output_path: pathlib.Path = OUTPUT_PATH,
    generated: Optional[GeneratedSet] = None,
    cache: Optional[ImageCache] = None,
    generator: Optional[np.random.Generator] = None,
) -> GenerationResult:
    """Generate dolls for 0-based indices ``offset`` up to ``count``.

    Doll ids are 1-based. Precomputed ``parts`` are used where available,
    otherwise a new random combination is drawn. The run stops early when no
    new combination can be found.

    Args:
        config: Indexed configuration
        parts: Precomputed combinations (sequence or replay modes)
        offset: First 0-based index to generate
        count: Index to stop at, defaults to the parts length or config count
        skip_images: Only compute combinations and metadata
        data_path: Root of the layer folders
        output_path: Directory receiving the images
        generated: Keys already produced, a fresh set when omitted
        cache: Decoded image cache, a fresh one when omitted
        generator: Random generator for sampling

    Returns:
        Combinations, metadata records and occurrence counts of the run
    """
    if count is None:
        count = len(parts) if parts else config.count
    generated = GeneratedSet() if generated is None else generated
    cache = ImageCache() if cache is None else cache
    result = GenerationResult(config)

    for i in progressbar(range(offset, count)):
        doll_id = i + 1
        logger.debug("generating #%d", doll_id)
        if i < len(parts):
            current = parts[i]
        else:
            current = random_combination(
                config.components, generated, config.hook_function, generator
            )
        if current is None:
            logger.warning(
                "No new combination for #%d, stopping after %d dolls",
                doll_id, len(result.combinations),
            )
            result.shortfall = True
            break

        if not skip_images:
            save_doll(config, doll_id, current, cache, data_path, output_path)
        if config.metadata is not None:
            result.metadata.append(
                build_metadata(config.metadata, doll_id, current, config.components)
            )
        result.occurrences.record(current)
        result.combinations[doll_id] = current

    return result


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate layered doll images and their metadata."
    )
    parser.add_argument("--config", type=pathlib.Path, default=CONFIG_FILE,
                        help="configuration file (default: %(default)s)")
    parser.add_argument("--data", type=pathlib.Path, default=DATA_PATH,
                        help="layer folders root (default: %(default)s)")
    parser.add_argument("--output", type=pathlib.Path, default=OUTPUT_PATH,
                        help="image output directory (default: %(default)s)")
    parser.add_argument("-s", "--sequence", action="store_true",
                        help="assign items sequentially instead of sampling")
    parser.add_argument("--load-metadata", type=pathlib.Path,
                        help="replay the combinations of a metadata file")
    parser.add_argument("--save-metadata", type=pathlib.Path,
                        help="save all metadata records as one JSON list")
    parser.add_argument("--metadata-dir", type=pathlib.Path,
                        help="write one JSON metadata file per doll")
    parser.add_argument("--save-csv", type=pathlib.Path,
                        help="save the trait table as CSV")
    parser.add_argument("--save-statistics", type=pathlib.Path,
                        help="save per-item occurrence counts as JSON")
    parser.add_argument("--export-config", type=pathlib.Path,
                        help="write the effective configuration as YAML")
    parser.add_argument("--skip-images", action="store_true",
                        help="do not render images")
    parser.add_argument("--offset", type=int, default=1,
                        help="1-based id to start generating at")
    parser.add_argument("--count", type=int,
                        help="number of dolls to generate")
    parser.add_argument("--log-level", default="INFO",
                        help="logging level (default: %(default)s)")
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> GenerationResult:
    """Main doll generation workflow."""
    print("Checking assets...")
    config = parse_config(args.config, args.data, args.export_config)
    print(f"You can create up to {total_combinations(config.components)} distinct dolls\n")

    needs_metadata = args.save_metadata or args.metadata_dir or args.save_csv
    if needs_metadata and config.metadata is None:
        raise ConfigurationError("Metadata output requested but no metadata template configured")

    parts: List[Combination] = []
    if args.load_metadata:
        parts = load_combinations(config.components, args.load_metadata)
    elif args.sequence:
        parts = sequential_combinations(config.components, config.count)

    offset = args.offset - 1
    count = offset + args.count if args.count is not None else None

    print("Starting generation...")
    result = generate(
        config,
        parts,
        offset=offset,
        count=count,
        skip_images=args.skip_images,
        data_path=args.data,
        output_path=args.output,
    )
    print(f"Generated {len(result.combinations)} dolls")

    if args.save_metadata:
        save_metadata(result.metadata, args.save_metadata)
    if args.metadata_dir:
        write_item_files(result.metadata, args.metadata_dir)
    if args.save_csv:
        metadata_frame(result.metadata, config.components).to_csv(args.save_csv)
    if args.save_statistics:
        result.occurrences.save(args.save_statistics)

    if result.combinations:
        print("\n=== Rarity Statistics ===")
        print_rarity_report(rarity_report(result.occurrences, config.components))

    print("done")
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
    )
    try:
        run(args)
    except DollError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
