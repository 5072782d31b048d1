"""Save images to the locations the vision service reads from and writes to."""
from __future__ import annotations
import logging
import pathlib
from typing import Optional
from PIL import Image
from .paths import VisionPaths

log = logging.getLogger(__name__)

def _save(image, path: pathlib.Path, fmt: str) -> pathlib.Path:
    if image is None:
        raise ValueError("image cannot be None")
    if not isinstance(image, Image.Image):
        # numpy arrays and anything else exposing the array interface
        image = Image.fromarray(image)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format=fmt)
    log.debug("Saved %s image to %s", fmt, path)
    return path

def save_input_image(image, paths: Optional[VisionPaths] = None) -> pathlib.Path:
    paths = paths or VisionPaths.from_config()
    return _save(image, paths.input_image, paths.image_format)

def save_output_image(image, paths: Optional[VisionPaths] = None) -> pathlib.Path:
    paths = paths or VisionPaths.from_config()
    return _save(image, paths.output_image, paths.image_format)
