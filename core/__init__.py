"""Core modules for license-daemon.

This package contains the license inspection/renewal pipeline, the secret
store adapters and the daemon entry point.

Recommended invocation (ensures imports work reliably):
- python -m core.license_daemon
"""
