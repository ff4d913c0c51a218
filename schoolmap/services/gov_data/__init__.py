"""Open data sources for the school map.

Available services:
- BoundaryService: Local Authority District boundaries from the ONS Open Geography Portal
- read_schools_csv: GIAS establishment extracts with National Grid coordinates
"""

from schoolmap.services.gov_data.boundaries import BoundaryService, EmptyResultError, filter_by_prefix
from schoolmap.services.gov_data.gias import SchoolDataError, read_schools_csv

__all__ = ["BoundaryService", "EmptyResultError", "SchoolDataError", "filter_by_prefix", "read_schools_csv"]
