from pydantic import BaseModel, Field
from typing import Optional
import yaml, pathlib

class ServerConfig(BaseModel):
    host: str = Field("127.0.0.1", description="Vision service IP/hostname")
    port: int = Field(7930, ge=0, le=65535, description="Vision service TCP port")
    timeout_ms: int = Field(3000, gt=0, description="Connect and per-command round trip timeout")

class TerminatorConfig(BaseModel):
    send: Optional[str] = Field(None, description="Appended to every command, e.g. '\\r'")
    receive: Optional[str] = Field(None, description="Marks the end of a response; None reads once")

class ParserConfig(BaseModel):
    pair_separator: str = Field(",")
    key_value_separator: str = Field(":")

class PathsConfig(BaseModel):
    root: str = Field("~/VisionService", description="Base directory for exchanged images")
    input_dir: str = Field("Input")
    output_dir: str = Field("Output")
    input_image: str = Field("image.bmp")
    output_image: str = Field("image.bmp")
    image_format: str = Field("PNG", description="Pillow format name used when saving images")

class AppConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    terminators: TerminatorConfig = Field(default_factory=TerminatorConfig)
    parser: ParserConfig = Field(default_factory=ParserConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)

def load_config(path: Optional[str] = None) -> AppConfig:
    """Load a YAML config file; no path (or an empty file) gives the defaults."""
    if path is None:
        return AppConfig()
    data = yaml.safe_load(pathlib.Path(path).read_text()) or {}
    return AppConfig.model_validate(data)
