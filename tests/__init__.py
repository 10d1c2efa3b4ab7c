"""Test package for Braille Convert.

Unit tests cover each component in isolation; integration tests drive the
HTTP API end to end.

Structure:
    - unit/: Individual function and class tests
    - integration/: API workflow tests through the ASGI app
    - helpers.py: Generated PDFs and in-process test doubles

PDFs are generated in memory, so no sample files are needed.
Leverages pytest with pytest-check for soft assertions.
"""
