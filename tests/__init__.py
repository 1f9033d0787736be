"""
Tests package - test suite for the AivenApplication conversion webhook.

Contains:
- unit/: Unit tests for the migration transform, adapter, server and observability
"""
