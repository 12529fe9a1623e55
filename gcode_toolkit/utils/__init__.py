"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Atomic I/O and YAML loading (fs)
    - Unified logging (logging_config)
    - Job-file validation (validators)

``fs`` and ``logging_config`` import nothing from the rest of the
package; ``validators`` depends on ``gcode_toolkit.directives`` only.

Convenience imports:
    from gcode_toolkit.utils import fs, validators
    from gcode_toolkit.utils.logging_config import setup_logging, get_logger
"""

from . import fs
from . import logging_config

__all__ = ["fs", "logging_config"]
