"""Minimal sandboxed test runner for Python scripts.

The `loco_runner` package executes a script that declares tests,
lifecycle hooks and expectations, and reports their outcomes without
delegating to an existing test framework.

Key features:
- scripts run in a restricted namespace exposing only test primitives;
- registrations are captured as typed events into an execution state;
- hooks and (possibly asynchronous) test bodies run strictly in order;
- named dependencies can be substituted with fakes for a whole process.
"""
