from .config import Config
from .config import config


__all__ = ["Config", "config"]
