"""
Terminal reporting for CLI commands.

Modules
-------
formatters : format_comparison() + format_trust_score() — plain strings.
"""
