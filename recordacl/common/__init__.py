"""Common utilities for recordacl."""

from .logger import setup_logger, get_logger
from .config import load_config, load_typed_config, RecordAclConfig

__all__ = ["get_logger", "load_config", "load_typed_config", "RecordAclConfig", "setup_logger"]
