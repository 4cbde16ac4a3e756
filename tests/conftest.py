import copy
import os
import sys

import pytest
from PIL import Image

# Ensure the project modules are importable without installing
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from config import build_config, fill_index  # noqa: E402


def write_png(path, color, size=(4, 4)):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path)
    return path


@pytest.fixture
def make_config():
    """Build an indexed Config from a raw dict."""

    def _make(raw):
        config = build_config(raw)
        fill_index(config)
        return config

    return _make


@pytest.fixture
def doll_data(tmp_path):
    """Background (2 items) and Hat (2 items) folders with solid colors."""
    data = tmp_path / "data"
    write_png(data / "Background" / "01.png", (255, 0, 0, 255))
    write_png(data / "Background" / "02.png", (0, 255, 0, 255))
    # hats cover the top-left pixel only
    for name, color in (("01.png", (0, 0, 255, 255)), ("02.PNG", (255, 255, 0, 255))):
        path = data / "Hat" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        image = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
        image.putpixel((0, 0), color)
        image.save(path, format="PNG")
    return data


_DOLL_RAW = {
    "count": 2,
    "components": [
        {
            "trait_type": "Background",
            "folder": "Background",
            "items": [{"trait_value": "A", "weight": 1}, {"trait_value": "B", "weight": 1}],
        },
        {
            "trait_type": "Hat",
            "folder": "Hat",
            "items": [{"trait_value": "Red", "weight": 3}, {"trait_value": "Blue", "weight": 1}],
        },
    ],
    "layers": [{"folder": "Background"}, {"folder": "Hat"}],
    "metadata": {
        "name": "Doll",
        "description": "A doll",
        "image": "ipfs://cid/{}.png",
        "source": "https://example.org",
    },
}


@pytest.fixture
def doll_raw():
    return copy.deepcopy(_DOLL_RAW)


@pytest.fixture
def png():
    return write_png
