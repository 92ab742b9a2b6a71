from ._base import BaseConstructMapper
from .ruby import RubyConstructMapper

__all__ = ["BaseConstructMapper", "RubyConstructMapper"]
