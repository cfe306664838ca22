"""replookup: aggregate public information about a person into a reputation report.

This package contains the source adapters, the concurrent retrieval pipeline,
the categorizer, the approximate photo matcher and the report assembler, plus
a FastAPI boundary and a command-line entry point.
"""
