"""
Record extractor for the Dragon Ball Legends fan databases.

This package fetches an index page, follows every linked document with a
bounded, paced pool of async tasks, and turns each HTML page into a typed
record using a declarative extraction schema. The collected records are
written to a single JSON file.

See SPEC_FULL.md for the full description of the pipeline.
"""
