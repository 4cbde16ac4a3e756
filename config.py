import importlib.util
import logging
import math
import pathlib
import re
from typing import Any, Dict, List, Optional

import yaml

from errors import ConfigurationError
from models import (
    AnimationEntry,
    Component,
    Config,
    HookFunction,
    Item,
    Layer,
    MetadataTemplate,
    Translation,
)

logger = logging.getLogger(__name__)

# Path constants
CONFIG_FILE = pathlib.Path("config.yaml")
DATA_PATH = pathlib.Path("data")
OUTPUT_PATH = pathlib.Path("out")

# Defaults
DEFAULT_COUNT = 100
MAX_DISCOVERED_ITEMS = 900


def load_config(
    path: pathlib.Path = CONFIG_FILE, data_path: pathlib.Path = DATA_PATH
) -> Dict[str, Any]:
    """Load the raw configuration and fill in defaults.

    Layers and components missing from the file are discovered from the data
    directory. The result is a plain dict, suitable for ``export_config``.
    """
    path = pathlib.Path(path)
    data_path = pathlib.Path(data_path)
    raw = None
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    else:
        logger.info("no %s, using auto-discovery mode", path)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must be a mapping at the top level")

    raw.setdefault("count", DEFAULT_COUNT)
    raw.setdefault("animation", False)
    if raw.get("animations") is None:
        raw["animations"] = []

    if raw.get("layers") is None:
        if not data_path.is_dir():
            raise ConfigurationError(f"Data directory not found: {data_path}")
        folders = sorted(p.name for p in data_path.iterdir() if p.is_dir())
        raw["layers"] = [{"folder": folder} for folder in folders]
        logger.info("%d folders detected (%s)", len(folders), ", ".join(folders))

    if raw.get("components") is None:
        logger.info("auto-discovering components")
        raw["components"] = discover_components(raw["layers"], data_path)

    return raw


def discover_components(
    layers: List[Dict[str, Any]], data_path: pathlib.Path = DATA_PATH
) -> List[Dict[str, Any]]:
    """Build one component per distinct layer folder from the files it holds.

    Item ``n`` exists while ``NN.png`` or ``NN-*.png`` is present. Files are
    shared between the layers using the folder, the remainder are frames.
    """
    folder_layers: Dict[str, int] = {}
    for layer in layers:
        folder = _require_folder(layer, "layer")
        folder_layers[folder] = folder_layers.get(folder, 0) + 1

    components = []
    for folder in folder_layers:
        folder_path = pathlib.Path(data_path) / folder
        names = [p.name for p in folder_path.iterdir()] if folder_path.is_dir() else []

        items = []
        for number in range(1, MAX_DISCOVERED_ITEMS):
            pattern = re.compile(rf"^{number:02d}(-.*)?\.png$", re.IGNORECASE)
            matches = [name for name in names if pattern.match(name)]
            if not matches:
                break
            item: Dict[str, Any] = {"trait_value": f"{folder} #{number}", "weight": 1}
            frames = math.ceil(len(matches) / folder_layers[folder])
            if frames > 1:
                item["frames"] = frames
            items.append(item)

        components.append({"trait_type": folder, "folder": folder, "items": items})
        logger.info("folder %s: %d items", folder, len(items))

    return components


def build_config(raw: Dict[str, Any]) -> Config:
    """Turn a raw configuration dict into a validated ``Config``."""
    components = []
    for entry in raw.get("components") or []:
        folder = _require_folder(entry, "component")
        raw_items = entry.get("items") or []
        if not all(isinstance(item, dict) for item in raw_items):
            raise ConfigurationError(f"Items of component {folder} must be mappings")
        items = [
            Item(
                weight=item.get("weight", 1),
                trait_value=item.get("trait_value"),
                frames=item.get("frames"),
            )
            for item in raw_items
        ]
        component = Component(
            trait_type=entry.get("trait_type", folder),
            folder=folder,
            items=items,
        )
        _validate_weights(component)
        components.append(component)

    layers = [
        Layer(
            folder=_require_folder(layer, "layer"),
            suffix=layer.get("suffix"),
            frames=layer.get("frames"),
        )
        for layer in raw.get("layers") or []
    ]
    if not layers:
        raise ConfigurationError("No layers configured")

    animations = [
        AnimationEntry(
            translates=[
                Translation(
                    folder=_require_folder(t, "translation"),
                    suffix=t.get("suffix"),
                    x=t.get("x", 0),
                    y=t.get("y", 0),
                )
                for t in entry.get("translates") or []
            ]
        )
        for entry in raw.get("animations") or []
    ]

    metadata = None
    if raw.get("metadata") is not None:
        master = raw["metadata"]
        metadata = MetadataTemplate(
            name=master.get("name", ""),
            description=master.get("description", ""),
            image=master.get("image", ""),
            source=master.get("source"),
        )

    return Config(
        count=int(raw.get("count", DEFAULT_COUNT)),
        animation=bool(raw.get("animation", False)),
        components=components,
        layers=layers,
        animations=animations,
        metadata=metadata,
        hook=raw.get("hook"),
    )


def _require_folder(entry: Any, kind: str) -> str:
    if not isinstance(entry, dict) or not entry.get("folder"):
        raise ConfigurationError(f"Missing folder in {kind} entry {entry!r}")
    return str(entry["folder"])


def _validate_weights(component: Component) -> None:
    """Reject components that cannot be sampled."""
    if not component.items:
        raise ConfigurationError(f"Component {component.folder} has no items")
    weights = [item.weight for item in component.items]
    for index, weight in enumerate(weights):
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise ConfigurationError(
                f"Invalid weight {weight!r} for item {index + 1} in component {component.folder}"
            )
    if any(weight < 0 for weight in weights):
        raise ConfigurationError(f"Negative weight in component {component.folder}")
    if sum(weights) == 0:
        raise ConfigurationError(f"All weights are zero in component {component.folder}")


def fill_index(config: Config) -> None:
    """Back-fill item, layer and translation indices.

    Layers are matched to components by folder, translations to layers by
    folder and suffix.
    """
    folder_index = {}
    for component_idx, component in enumerate(config.components):
        folder_index[component.folder] = component_idx
        for item_idx, item in enumerate(component.items):
            item.index = item_idx

    for layer in config.layers:
        if layer.folder not in folder_index:
            raise ConfigurationError(f"Unknown folder {layer.folder}")
        layer.index = folder_index[layer.folder]

    for entry in config.animations:
        for translation in entry.translates:
            for layer_idx, layer in enumerate(config.layers):
                if layer.folder == translation.folder and layer.suffix == translation.suffix:
                    translation.index = layer_idx
                    break
            else:
                raise ConfigurationError(f"Bad folder {translation.folder} in animations")


def load_hook(path: pathlib.Path) -> HookFunction:
    """Import a Python file and return its ``hook`` function."""
    path = pathlib.Path(path)
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot load hook from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    hook = getattr(module, "hook", None)
    if not callable(hook):
        raise ConfigurationError(f"{path} does not define a hook function")
    return hook


def export_config(raw: Dict[str, Any], path: pathlib.Path) -> None:
    """Write the effective configuration as YAML."""
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(raw, f, indent=2, sort_keys=False, allow_unicode=True)


def parse_config(
    path: pathlib.Path = CONFIG_FILE,
    data_path: pathlib.Path = DATA_PATH,
    export_path: Optional[pathlib.Path] = None,
) -> Config:
    """Load, build and index the configuration, resolving the hook if any.

    With ``export_path`` the effective raw configuration is saved first.
    """
    raw = load_config(path, data_path)
    if export_path is not None:
        export_config(raw, export_path)
    config = build_config(raw)
    if config.hook is not None:
        config.hook_function = load_hook(config.hook)
    fill_index(config)
    return config
