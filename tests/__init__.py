"""Test suite for the loco-runner package.

This package contains unit and integration tests validating event
dispatching, sandbox construction, dependency substitution, lifecycle
scheduling, and reporting of executed scripts.
"""
