"""Frontends - user interfaces for datastar-aiohttp.

Submodules:
    cli/    Command-line interface
"""
