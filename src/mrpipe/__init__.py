"""
mrpipe: declarative dataflow pipelines as map, combine and reduce functions.

An execution adapter that lets a pipeline of named steps serve as the
record-processing callback of a batch job task.
"""

__version__ = "0.1.0"
