from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import pathlib
from ..config import PathsConfig

@dataclass(frozen=True)
class VisionPaths:
    """Where images are exchanged with the vision service."""
    input_dir: pathlib.Path
    output_dir: pathlib.Path
    input_image: pathlib.Path
    output_image: pathlib.Path
    image_format: str = "PNG"

    @classmethod
    def from_config(cls, cfg: Optional[PathsConfig] = None) -> "VisionPaths":
        cfg = cfg or PathsConfig()
        root = pathlib.Path(cfg.root).expanduser()
        in_dir, out_dir = root / cfg.input_dir, root / cfg.output_dir
        return cls(in_dir, out_dir, in_dir / cfg.input_image, out_dir / cfg.output_image, cfg.image_format)

    def ensure_directories(self) -> None:
        # idempotent
        self.input_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
