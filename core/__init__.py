"""
Core Package

Contains the exchange-agnostic pieces shared by every client:
- config: Pydantic Settings loaded from environment / .env
- logging: Centralized logger and request/stream log helpers
- exceptions: Error taxonomy (configuration, auth, signing, transport, server)
- schemas: Pydantic models for credentials, request descriptors and responses
- utils: Query string encoding and UTC time helpers
"""
