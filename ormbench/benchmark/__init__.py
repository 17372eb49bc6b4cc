"""
Access Layer Benchmark Module
"""
from .runner import LAYERS, BenchmarkResult, layer_queries, run_benchmarks

__all__ = [
    "LAYERS",
    "BenchmarkResult",
    "layer_queries",
    "run_benchmarks",
]
