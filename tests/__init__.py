"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (signer, pre-processor,
  registry, pool, clients, factory, listen key sessions, streams)

Network I/O is mocked. Uses pytest with pytest-asyncio for async tests.
"""
