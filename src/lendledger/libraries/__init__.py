from . import ray_math

__all__ = ("ray_math",)
