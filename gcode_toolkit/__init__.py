"""
G-code Toolkit Package.

Analysis and post-processing for FDM printer G-code: extracts print
metrics and diagnostics from a stream, and rewrites or augments it with
speed/temperature/fan scaling, layer pauses, code injections and an
end-of-print auto-eject sequence.

Subpackages:
    gcode: Tokenizer, metrics extractor, layer locator, diagnostics, mutation pipeline
    directives: Immutable mutation directives and built-in templates
    configs: Printer profile loading and validation
    utils: Filesystem, logging and job-file validation helpers
    scripts: Command-line entry points
"""

__version__ = "0.1.0"

__all__ = ["gcode", "directives", "configs", "utils", "scripts"]
