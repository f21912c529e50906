"""backlog-import - bulk issue registration for Backlog from a spreadsheet template.

High-level public API:

from backlogimport import BulkImport

suite = BulkImport.from_config_path('backlog_import.config.yaml')
suite.validate()          # read + validate only, nothing is created
report = suite.run()      # validate, convert, create in template order
print(report.totals())

The pipeline pieces are importable on their own for other front ends:
``validate`` (batch validation), ``run_import`` (sequential creation with
``*`` parent chaining) and ``read_template`` (template rows).
"""

from __future__ import annotations

from .config import ImportConfig, load_config
from .core import BulkImport
from .importer import ImportReport, run_import
from .template import read_template
from .validation import validate

__version__ = "0.3.0"

__all__ = [
    "BulkImport",
    "ImportConfig",
    "ImportReport",
    "load_config",
    "read_template",
    "run_import",
    "validate",
    "__version__",
]
