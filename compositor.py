import logging
import pathlib
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Sequence, Tuple

from PIL import Image

from config import DATA_PATH, OUTPUT_PATH
from errors import FileResolutionError
from frames import FrameSchedule
from models import Combination, Config

logger = logging.getLogger(__name__)


class ImageCache:
    """Decoded layer images keyed by resolved path.

    Entries are added once and never evicted, so a path is decoded at most
    once per process.
    """

    def __init__(self):
        self._images: Dict[str, Image.Image] = {}
        self._lock = threading.Lock()

    def load(self, path: pathlib.Path) -> Image.Image:
        key = str(path)
        with self._lock:
            image = self._images.get(key)
        if image is not None:
            return image

        with Image.open(path) as source:
            image = source.convert("RGBA")

        with self._lock:
            return self._images.setdefault(key, image)

    def __contains__(self, path) -> bool:
        return str(path) in self._images

    def __len__(self) -> int:
        return len(self._images)


def resolve_file(folder: pathlib.Path, name: str) -> pathlib.Path:
    """Find the single file in ``folder`` named ``name``, ignoring case."""
    folder = pathlib.Path(folder)
    matches = []
    if folder.is_dir():
        matches = sorted(p for p in folder.iterdir() if p.name.lower() == name.lower())
    if len(matches) != 1:
        raise FileResolutionError(
            f"Need exactly 1 file for {folder / name}, found {[str(p) for p in matches]}"
        )
    return matches[0]


def load_frame(paths: Sequence[pathlib.Path], cache: ImageCache) -> List[Image.Image]:
    """Load the layer images of one frame concurrently, in layer order."""
    with ThreadPoolExecutor(max_workers=max(len(paths), 1)) as executor:
        return list(executor.map(cache.load, paths))


def merge_images(
    images: Sequence[Image.Image],
    offsets: Sequence[Tuple[int, int]],
    output_filename: pathlib.Path,
) -> Image.Image:
    """Stack images in order at their offsets and save the result.

    The canvas takes the size of the first image; later images are drawn over
    earlier ones.
    """
    width, height = images[0].size
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    for image, (x, y) in zip(images, offsets):
        if image.size != (width, height):
            logger.warning(
                "Dimension mismatch detected: %sx%s instead of %sx%s",
                image.width, image.height, width, height,
            )
        # paste onto a blank layer first so negative offsets clip
        layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        layer.paste(image, (x, y))
        canvas = Image.alpha_composite(canvas, layer)

    canvas.save(output_filename)
    return canvas


def save_doll(
    config: Config,
    doll_id: int,
    combination: Combination,
    cache: ImageCache,
    data_path: pathlib.Path = DATA_PATH,
    output_path: pathlib.Path = OUTPUT_PATH,
) -> List[pathlib.Path]:
    """Render one doll and return the written files.

    Static dolls go to ``{id}.png``; animated ones to ``{id}/NN.png``, one file
    per frame.
    """
    schedule = FrameSchedule.build(config, combination)
    prefix = pathlib.Path(output_path) / str(doll_id)
    prefix.parent.mkdir(parents=True, exist_ok=True)
    if config.animation:
        prefix.mkdir(parents=True, exist_ok=True)

    written = []
    for frame in range(schedule.total_frames):
        paths = [
            resolve_file(
                pathlib.Path(data_path) / config.components[layer.index].folder, name
            )
            for layer, name in zip(config.layers, schedule.file_names(frame))
        ]
        images = load_frame(paths, cache)

        if config.animation:
            output_filename = prefix / f"{frame + 1:02d}.png"
        else:
            output_filename = prefix.with_name(f"{doll_id}.png")
        merge_images(images, schedule.offsets(frame), output_filename)
        written.append(output_filename)

    return written
