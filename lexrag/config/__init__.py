from lexrag.config.loader import build_provider_config, load_config
from lexrag.config.settings import Settings

__all__ = ["Settings", "build_provider_config", "load_config"]
