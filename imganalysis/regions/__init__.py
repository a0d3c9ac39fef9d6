"""
Connected-area counting over clustering labels.
"""

from .area_counter import Region, count_regions, count_all_regions

__all__ = ['Region', 'count_regions', 'count_all_regions']
