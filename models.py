from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

HookFunction = Callable[[List[int]], Optional[List[int]]]


@dataclass
class Item:
    """One choice within a component.

    ``index`` is the position inside the component, filled once by
    ``config.fill_index`` and never changed afterwards.
    """

    weight: float = 1
    trait_value: Optional[str] = None
    frames: Optional[int] = None
    index: int = 0


@dataclass
class Component:
    trait_type: str
    folder: str
    items: List[Item] = field(default_factory=list)


@dataclass
class Layer:
    """One paint step; ``index`` points at the component sharing its folder."""

    folder: str
    suffix: Optional[str] = None
    frames: Optional[int] = None
    index: int = 0


@dataclass
class Translation:
    """Pixel offset for one layer; ``index`` is the layer index."""

    folder: str
    suffix: Optional[str] = None
    x: int = 0
    y: int = 0
    index: int = 0


@dataclass
class AnimationEntry:
    translates: List[Translation] = field(default_factory=list)


@dataclass
class MetadataTemplate:
    name: str
    description: str = ""
    image: str = ""
    source: Optional[str] = None


@dataclass
class Config:
    count: int = 100
    animation: bool = False
    components: List[Component] = field(default_factory=list)
    layers: List[Layer] = field(default_factory=list)
    animations: List[AnimationEntry] = field(default_factory=list)
    metadata: Optional[MetadataTemplate] = None
    hook: Optional[str] = None
    hook_function: Optional[HookFunction] = None


# One selected item per component, in component order
Combination = Tuple[Item, ...]
