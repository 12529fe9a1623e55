"""Command-line entry points (``gcode-analyze``, ``gcode-postprocess``)."""
