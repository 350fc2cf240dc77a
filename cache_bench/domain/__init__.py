"""
Domain package for the cache benchmark.

Exports the user record model and its cache serialization helpers.
Keep this package focused on data definitions and validation concerns.
"""

from cache_bench.domain.models import Record, dump_records, load_records

__all__ = [
    "Record",
    "dump_records",
    "load_records",
]
