"""链上数据读取"""
from .base import BaseChainReader

__all__ = ["BaseChainReader"]
