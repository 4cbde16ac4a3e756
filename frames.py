from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from arithmetic import lcm_all
from models import AnimationEntry, Combination, Config, Layer


@dataclass
class FrameSchedule:
    """Which sub-frame and offset each layer uses for every output frame.

    Per-layer frame counts come from the selected item, then the layer,
    then 1. With animation on, the number of output frames is the LCM of
    those counts (and of the animation-entry count when there is more than
    one entry), so every layer loops a whole number of times.
    """

    layers: Sequence[Layer]
    combination: Combination
    layer_frames: List[int]
    animations: Sequence[AnimationEntry]
    total_frames: int

    @classmethod
    def build(cls, config: Config, combination: Combination) -> "FrameSchedule":
        layer_frames = [
            _frame_count(combination[layer.index].frames, layer.frames)
            for layer in config.layers
        ]
        counts = list(layer_frames)
        if len(config.animations) > 1:
            counts.append(len(config.animations))
        total_frames = lcm_all(counts) if config.animation else 1
        return cls(
            layers=config.layers,
            combination=combination,
            layer_frames=layer_frames,
            animations=config.animations,
            total_frames=total_frames,
        )

    def sub_frame(self, frame: int, layer_idx: int) -> int:
        """0-based sub-frame of a layer at output frame ``frame``."""
        return frame % self.layer_frames[layer_idx]

    def frame_suffix(self, frame: int, layer_idx: int) -> str:
        if self.layer_frames[layer_idx] <= 1:
            return ""
        return f"-{self.sub_frame(frame, layer_idx) + 1:02d}"

    def animation(self, frame: int) -> Optional[AnimationEntry]:
        if not self.animations:
            return None
        return self.animations[frame % len(self.animations)]

    def offsets(self, frame: int) -> List[Tuple[int, int]]:
        """Pixel offset per layer, (0, 0) for layers without a translation."""
        offsets = [(0, 0)] * len(self.layers)
        entry = self.animation(frame)
        if entry is not None:
            for translation in entry.translates:
                offsets[translation.index] = (translation.x, translation.y)
        return offsets

    def file_names(self, frame: int) -> List[str]:
        """Source file name of every layer at ``frame``."""
        names = []
        for layer_idx, layer in enumerate(self.layers):
            item = self.combination[layer.index]
            suffix = f"-{layer.suffix}" if layer.suffix else ""
            names.append(f"{item.index + 1:02d}{suffix}{self.frame_suffix(frame, layer_idx)}.png")
        return names


def _frame_count(item_frames: Optional[int], layer_frames: Optional[int]) -> int:
    if item_frames:
        return item_frames
    if layer_frames:
        return layer_frames
    return 1
