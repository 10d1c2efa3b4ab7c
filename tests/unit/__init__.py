"""Unit tests for individual components in isolation.

Coverage:
    - parsing/: Extraction fallback chain and URL fetching
    - agent/: Configuration, chunking, cleanup and validation
    - braille/: Transliteration, wrapping and the online translator
    - storage/: Job stores and the blob store
    - pipeline/: Orchestrator stages, queueing and live updates

The AI service is replaced with an in-process fake and HTTP with
httpx.MockTransport. Leverages pytest-check for multiple assertions per test.
"""
