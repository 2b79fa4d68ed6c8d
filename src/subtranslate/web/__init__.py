from __future__ import annotations

"""
subtranslate Web 子模块

提供基于 FastAPI 的轻量 HTTP 接口。
"""

from .app import create_app, main

__all__ = ["create_app", "main"]
