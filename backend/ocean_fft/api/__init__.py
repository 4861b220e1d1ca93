"""
API 路由模块。
"""

from ocean_fft.api.router import api_router

__all__ = ["api_router"]
