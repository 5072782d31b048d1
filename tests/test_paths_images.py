import numpy as np
import pytest
from PIL import Image

from vmhelper.config import PathsConfig
from vmhelper.utils.images import save_input_image, save_output_image
from vmhelper.utils.paths import VisionPaths


@pytest.fixture
def paths(tmp_path):
    return VisionPaths.from_config(PathsConfig(root=str(tmp_path / "VisionService")))


def test_paths_layout(paths, tmp_path):
    root = tmp_path / "VisionService"
    assert paths.input_dir == root / "Input"
    assert paths.output_dir == root / "Output"
    assert paths.input_image == root / "Input" / "image.bmp"
    assert paths.output_image == root / "Output" / "image.bmp"


def test_default_root_is_expanded():
    paths = VisionPaths.from_config()
    assert "~" not in str(paths.input_dir)


def test_ensure_directories_is_idempotent(paths):
    paths.ensure_directories()
    paths.ensure_directories()
    assert paths.input_dir.is_dir()
    assert paths.output_dir.is_dir()


def test_save_input_image(paths):
    written = save_input_image(Image.new("RGB", (4, 3), "red"), paths)
    assert written == paths.input_image
    with Image.open(written) as img:
        assert img.format == "PNG"
        assert img.size == (4, 3)


def test_save_output_image_from_array(paths):
    written = save_output_image(np.zeros((2, 5), dtype=np.uint8), paths)
    with Image.open(written) as img:
        assert img.size == (5, 2)


def test_save_none_raises(paths):
    with pytest.raises(ValueError):
        save_input_image(None, paths)
